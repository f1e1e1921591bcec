"""Data models for SQL MI migration runs."""

from .artifact import (
    BackupArtifact,
    BackupKind,
    StorageAccessToken,
    artifact_blob_name,
    is_artifact_of,
    parse_artifact_timestamp,
)
from .connection import SourceConnection, SourceCredential
from .migration import (
    MigrationDescriptor,
    MigrationHandle,
    MigrationMode,
    MigrationObservation,
    MigrationStatus,
    ProvisioningState,
    StorageDescriptor,
    TargetDescriptor,
    OFFLINE_ONGOING_STATES,
    ONLINE_ONGOING_STATUSES,
)
from .run import MigrationRunRecord, MigrationRunResult, RunOutcome, outcome_for

__all__ = [
    # Artifacts
    "BackupArtifact",
    "BackupKind",
    "StorageAccessToken",
    "artifact_blob_name",
    "is_artifact_of",
    "parse_artifact_timestamp",
    # Connection
    "SourceConnection",
    "SourceCredential",
    # Migration
    "MigrationDescriptor",
    "MigrationHandle",
    "MigrationMode",
    "MigrationObservation",
    "MigrationStatus",
    "ProvisioningState",
    "StorageDescriptor",
    "TargetDescriptor",
    "OFFLINE_ONGOING_STATES",
    "ONLINE_ONGOING_STATUSES",
    # Runs
    "MigrationRunRecord",
    "MigrationRunResult",
    "RunOutcome",
    "outcome_for",
]
