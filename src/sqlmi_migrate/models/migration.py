"""
Migration request, handle and observation models.

Describes what is submitted to the Azure database migration service and
what the controller observes while the migration runs.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .connection import SourceConnection


class MigrationMode(str, Enum):
    """How the migration reaches the target."""

    OFFLINE = "Offline"
    ONLINE = "Online"


class ProvisioningState(str, Enum):
    """Provisioning states reported for a database migration resource."""

    ACCEPTED = "Accepted"
    IN_PROGRESS = "InProgress"
    PROVISIONING = "Provisioning"
    UPDATING = "Updating"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELED = "Canceled"


class MigrationStatus(str, Enum):
    """Migration statuses reported for a database migration resource."""

    IN_PROGRESS = "InProgress"
    FULL_BACKUP_UPLOAD_COMPLETED = "FullBackupUploadCompleted"
    FULL_BACKUP_RESTORE_IN_PROGRESS = "FullBackupRestoreInProgress"
    LOG_SHIPPING_IN_PROGRESS = "LogShippingInProgress"
    COMPLETING = "Completing"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELED = "Canceled"


OFFLINE_ONGOING_STATES = frozenset({
    ProvisioningState.IN_PROGRESS.value,
    ProvisioningState.ACCEPTED.value,
})

ONLINE_ONGOING_STATUSES = frozenset({
    MigrationStatus.IN_PROGRESS.value,
    MigrationStatus.FULL_BACKUP_UPLOAD_COMPLETED.value,
    MigrationStatus.FULL_BACKUP_RESTORE_IN_PROGRESS.value,
    MigrationStatus.LOG_SHIPPING_IN_PROGRESS.value,
})


def _normalize(value: Optional[str]) -> Optional[str]:
    return value.lower() if value else None


@dataclass(frozen=True)
class MigrationObservation:
    """One poll result from the migration service."""

    provisioning_state: Optional[str]
    migration_status: Optional[str]
    migration_operation_id: Optional[str] = None
    observed_at: datetime = field(default_factory=datetime.utcnow)

    def is_ongoing(self, mode: MigrationMode) -> bool:
        """
        Whether the migration is still running for the given mode.

        Offline runs are judged on the provisioning state, online runs on
        the migration status.
        """
        if mode == MigrationMode.OFFLINE:
            value, ongoing = self.provisioning_state, OFFLINE_ONGOING_STATES
        else:
            value, ongoing = self.migration_status, ONLINE_ONGOING_STATUSES
        return _normalize(value) in {s.lower() for s in ongoing}

    @property
    def is_ready_for_cutover(self) -> bool:
        """Online migration has restored the seed and is shipping logs."""
        return (
            _normalize(self.migration_status)
            == MigrationStatus.LOG_SHIPPING_IN_PROGRESS.value.lower()
        )

    def describe(self) -> str:
        return (
            f"provisioningState={self.provisioning_state or '-'}, "
            f"migrationStatus={self.migration_status or '-'}"
        )


@dataclass(frozen=True)
class MigrationHandle:
    """Identifies a submitted migration for polling and cutover."""

    resource_group: str
    managed_instance_name: str
    target_database_name: str
    migration_operation_id: Optional[str] = None

    def __str__(self) -> str:
        return (
            f"{self.resource_group}/{self.managed_instance_name}/"
            f"{self.target_database_name}"
        )


@dataclass(frozen=True)
class TargetDescriptor:
    """Target managed instance and the migration service that drives it."""

    resource_group: str
    managed_instance_name: str
    managed_instance_resource_id: str
    target_database_name: str
    migration_service_resource_id: str


@dataclass(frozen=True)
class StorageDescriptor:
    """Blob container that holds the backups the service restores from."""

    storage_account_resource_id: str
    container_name: str
    account_key: Optional[str] = field(default=None, repr=False)


@dataclass(frozen=True)
class MigrationDescriptor:
    """
    Everything needed to submit one migration request.

    Built once by the launcher. The source connection's credential is
    invalidated by the orchestrator once the request has been submitted,
    so a descriptor cannot be resubmitted afterwards.
    """

    mode: MigrationMode
    source_connection: SourceConnection
    target: TargetDescriptor
    storage: StorageDescriptor
    last_backup_name: Optional[str] = None

    @property
    def is_offline(self) -> bool:
        return self.mode == MigrationMode.OFFLINE
