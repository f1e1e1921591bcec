"""
Migration launcher preconditions and submission.
"""

import pytest

from sqlmi_migrate.exceptions import ArtifactNotFoundError, MissingSeedArtifactError
from sqlmi_migrate.models import MigrationMode, StorageDescriptor, TargetDescriptor
from sqlmi_migrate.orchestration import MigrationLauncher


@pytest.fixture
def launcher(storage, migration_client):
    return MigrationLauncher(storage, migration_client)


@pytest.fixture
def target():
    return TargetDescriptor(
        resource_group="rg-migration",
        managed_instance_name="mi01",
        managed_instance_resource_id="/subscriptions/sub/resourceGroups/rg-migration/providers/Microsoft.Sql/managedInstances/mi01",
        target_database_name="Sales",
        migration_service_resource_id="/subscriptions/sub/resourceGroups/rg-migration/providers/Microsoft.DataMigration/sqlMigrationServices/sqlmig-svc-mi01",
    )


@pytest.fixture
def storage_descriptor():
    return StorageDescriptor(
        storage_account_resource_id="/subscriptions/sub/resourceGroups/rg-migration/providers/Microsoft.Storage/storageAccounts/migbackups",
        container_name="migration-backups",
        account_key="fake-account-key",
    )


class TestOfflinePreconditions:
    @pytest.mark.parametrize("last_backup_name", [None, ""])
    def test_missing_seed_name_fails_before_any_remote_call(
        self, launcher, storage, migration_client, connection, target, storage_descriptor, last_backup_name
    ):
        with pytest.raises(MissingSeedArtifactError):
            launcher.start(MigrationMode.OFFLINE, connection, target, storage_descriptor, last_backup_name)

        assert storage.exists_calls == []
        assert migration_client.submitted == []

    def test_absent_blob_checks_once_and_never_submits(
        self, launcher, storage, migration_client, connection, target, storage_descriptor
    ):
        with pytest.raises(ArtifactNotFoundError):
            launcher.start(
                MigrationMode.OFFLINE, connection, target, storage_descriptor,
                "Sales_FULL_20240115_120000.bak",
            )

        assert storage.exists_calls == ["Sales_FULL_20240115_120000.bak"]
        assert migration_client.submitted == []

    def test_existing_blob_is_submitted_with_last_backup_name(
        self, launcher, storage, migration_client, connection, target, storage_descriptor
    ):
        storage.blobs.add("Sales_FULL_20240115_120000.bak")

        handle = launcher.start(
            MigrationMode.OFFLINE, connection, target, storage_descriptor,
            "Sales_FULL_20240115_120000.bak",
        )

        [descriptor] = migration_client.submitted
        assert descriptor.mode == MigrationMode.OFFLINE
        assert descriptor.last_backup_name == "Sales_FULL_20240115_120000.bak"
        assert handle.target_database_name == "Sales"


class TestOnline:
    def test_online_needs_no_seed_name(
        self, launcher, storage, migration_client, connection, target, storage_descriptor
    ):
        launcher.start(MigrationMode.ONLINE, connection, target, storage_descriptor)

        [descriptor] = migration_client.submitted
        assert descriptor.mode == MigrationMode.ONLINE
        assert descriptor.last_backup_name is None
        assert storage.exists_calls == []

    def test_online_drops_seed_name(
        self, launcher, migration_client, connection, target, storage_descriptor
    ):
        launcher.start(MigrationMode.ONLINE, connection, target, storage_descriptor, "ignored.bak")
        assert migration_client.submitted[0].last_backup_name is None
