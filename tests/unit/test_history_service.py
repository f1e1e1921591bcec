"""
Run history persistence against a mocked table client.
"""

from datetime import datetime
from unittest.mock import MagicMock

from sqlmi_migrate.models import MigrationMode, MigrationRunRecord
from sqlmi_migrate.services import MigrationHistoryService


def test_save_and_list_runs(make_settings):
    clients = MagicMock()
    clients.settings = make_settings(record_history=True)
    table = clients.get_table_client.return_value
    service = MigrationHistoryService(clients)

    older = MigrationRunRecord(
        mode=MigrationMode.OFFLINE, source_server="sql01", source_database="Sales",
        managed_instance_name="mi01", target_database_name="Sales",
        created_at=datetime(2024, 1, 14, 12, 0, 0),
    )
    newer = older.model_copy(update={"id": "run-2", "created_at": datetime(2024, 1, 15, 12, 0, 0)})

    service.save_run(older)
    table.upsert_entity.assert_called_once_with(older.to_table_entity())
    clients.get_table_client.assert_called_with("migrationhistory")

    table.list_entities.return_value = [older.to_table_entity(), newer.to_table_entity()]
    runs = service.get_recent_runs()
    assert [r.id for r in runs] == ["run-2", older.id]
