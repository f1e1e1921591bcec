"""
Migration run result and history models.

A run result is returned by the orchestrator; a run record is its
persisted form in Azure Table Storage.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from .artifact import BackupArtifact
from .migration import MigrationHandle, MigrationMode, MigrationObservation


class RunOutcome(str, Enum):
    """How a migration run ended from the controller's point of view."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ENDED = "ended"
    LEFT_RUNNING = "left_running"


def outcome_for(mode: MigrationMode, observation: MigrationObservation) -> RunOutcome:
    """Classify a terminal observation."""
    if mode == MigrationMode.OFFLINE:
        value = observation.provisioning_state
    else:
        value = observation.migration_status
    value = (value or "").lower()

    if value == "succeeded":
        return RunOutcome.SUCCEEDED
    if value in ("failed", "canceled", "cancelled"):
        return RunOutcome.FAILED
    return RunOutcome.ENDED


@dataclass
class MigrationRunResult:
    """Summary of one orchestration run."""

    mode: MigrationMode
    handle: Optional[MigrationHandle] = None
    artifacts: list[BackupArtifact] = field(default_factory=list)
    last_backup_name: Optional[str] = None
    log_backup_job: Optional[str] = None
    final_observation: Optional[MigrationObservation] = None
    poll_count: int = 0
    cutover_performed: bool = False
    outcome: Optional[RunOutcome] = None
    warnings: list[str] = field(default_factory=list)


class MigrationRunRecord(BaseModel):
    """
    Persisted history entry for a migration run.

    Stored in Azure Table Storage with:
    - PartitionKey: run date (YYYY-MM-DD)
    - RowKey: inverted ticks + id, newest first
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    mode: MigrationMode
    source_server: str
    source_database: str
    managed_instance_name: str
    target_database_name: str
    last_backup_name: Optional[str] = None
    log_backup_job: Optional[str] = None
    provisioning_state: Optional[str] = None
    migration_status: Optional[str] = None
    migration_operation_id: Optional[str] = None
    poll_count: int = 0
    cutover_performed: bool = False
    outcome: Optional[RunOutcome] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @classmethod
    def from_result(
        cls,
        result: MigrationRunResult,
        source_server: str,
        source_database: str,
        error_message: Optional[str] = None,
    ) -> "MigrationRunRecord":
        observation = result.final_observation
        handle = result.handle
        return cls(
            mode=result.mode,
            source_server=source_server,
            source_database=source_database,
            managed_instance_name=handle.managed_instance_name if handle else "",
            target_database_name=handle.target_database_name if handle else "",
            last_backup_name=result.last_backup_name,
            log_backup_job=result.log_backup_job,
            provisioning_state=observation.provisioning_state if observation else None,
            migration_status=observation.migration_status if observation else None,
            migration_operation_id=(
                observation.migration_operation_id if observation else None
            ),
            poll_count=result.poll_count,
            cutover_performed=result.cutover_performed,
            outcome=result.outcome,
            error_message=error_message,
        )

    def to_table_entity(self) -> dict:
        """Convert to Azure Table Storage entity format."""
        partition_key = self.created_at.strftime("%Y-%m-%d")

        # Inverted ticks so newer runs sort first; created_at is naive UTC
        max_ticks = 3155378975999999999
        current_ticks = (self.created_at - datetime(1, 1, 1)) // timedelta(microseconds=1) * 10
        row_key = f"{max_ticks - current_ticks:019d}_{self.id}"

        return {
            "PartitionKey": partition_key,
            "RowKey": row_key,
            "mode": self.mode.value,
            "source_server": self.source_server,
            "source_database": self.source_database,
            "managed_instance_name": self.managed_instance_name,
            "target_database_name": self.target_database_name,
            "last_backup_name": self.last_backup_name or "",
            "log_backup_job": self.log_backup_job or "",
            "provisioning_state": self.provisioning_state or "",
            "migration_status": self.migration_status or "",
            "migration_operation_id": self.migration_operation_id or "",
            "poll_count": self.poll_count,
            "cutover_performed": self.cutover_performed,
            "outcome": self.outcome.value if self.outcome else "",
            "error_message": self.error_message or "",
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_table_entity(cls, entity: dict) -> "MigrationRunRecord":
        """Create instance from Azure Table Storage entity."""
        return cls(
            id=entity["RowKey"].split("_", 1)[1],
            mode=MigrationMode(entity["mode"]),
            source_server=entity["source_server"],
            source_database=entity["source_database"],
            managed_instance_name=entity["managed_instance_name"],
            target_database_name=entity["target_database_name"],
            last_backup_name=entity.get("last_backup_name") or None,
            log_backup_job=entity.get("log_backup_job") or None,
            provisioning_state=entity.get("provisioning_state") or None,
            migration_status=entity.get("migration_status") or None,
            migration_operation_id=entity.get("migration_operation_id") or None,
            poll_count=entity.get("poll_count", 0),
            cutover_performed=entity.get("cutover_performed", False),
            outcome=RunOutcome(entity["outcome"]) if entity.get("outcome") else None,
            error_message=entity.get("error_message") or None,
            created_at=datetime.fromisoformat(entity["created_at"]),
        )
