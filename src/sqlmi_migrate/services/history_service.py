"""
Migration run history in Azure Table Storage.
"""

import logging
from typing import Optional

from azure.core.exceptions import ResourceExistsError

from ..config import AzureClients, get_settings
from ..models import MigrationRunRecord

logger = logging.getLogger(__name__)


class MigrationHistoryService:
    """Stores one record per orchestration run."""

    def __init__(self, azure_clients: Optional[AzureClients] = None):
        from ..config.azure_clients import get_azure_clients

        self._clients = azure_clients or get_azure_clients()
        self._settings = get_settings() if azure_clients is None else azure_clients.settings
        self._table_name = self._settings.history_table_name

    def _get_table_client(self):
        """Get table client, ensuring table exists."""
        try:
            self._clients.table_service_client.create_table(self._table_name)
        except ResourceExistsError:
            pass
        return self._clients.get_table_client(self._table_name)

    def save_run(self, record: MigrationRunRecord) -> None:
        """Upsert a run record."""
        table_client = self._get_table_client()
        table_client.upsert_entity(record.to_table_entity())
        logger.info(f"Saved migration run record: {record.id}")

    def get_recent_runs(self, limit: int = 20) -> list[MigrationRunRecord]:
        """Return the newest run records across all dates."""
        table_client = self._get_table_client()
        records = [
            MigrationRunRecord.from_table_entity(entity)
            for entity in table_client.list_entities()
        ]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit]
