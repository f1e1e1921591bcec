"""
Migration orchestrator.

Runs one migration end to end, strictly in sequence:
credential setup -> backups -> launch -> poll loop -> optional cutover.

The mode is resolved once into an OfflinePlan or OnlinePlan and each plan
has its own run path. The source credential lives only for the phases
that talk to the source server and is invalidated before polling starts.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, ClassVar, Optional, Union

from ..config import AzureClients, Settings, get_settings
from ..exceptions import LogBackupError, MigrationError, MissingSeedArtifactError
from ..models import (
    MigrationHandle,
    MigrationMode,
    MigrationObservation,
    MigrationRunRecord,
    MigrationRunResult,
    RunOutcome,
    SourceConnection,
    SourceCredential,
    StorageDescriptor,
    TargetDescriptor,
    outcome_for,
)
from ..services import (
    BackupCoordinator,
    BaseStatementExecutor,
    LogShippingScheduler,
    MigrationHistoryService,
    MigrationServiceClient,
    SqlCmdExecutor,
    StorageService,
)
from .cutover import CutoverGate
from .launcher import MigrationLauncher
from .monitor import MigrationMonitor

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[MigrationHandle, MigrationObservation], bool]
CredentialSource = Callable[[], SourceCredential]


@dataclass(frozen=True)
class OfflinePlan:
    """Offline run: one full backup, restore it, done."""

    mode: ClassVar[MigrationMode] = MigrationMode.OFFLINE
    auto_backup: bool
    last_backup_name: Optional[str] = None


@dataclass(frozen=True)
class OnlinePlan:
    """Online run: seed backup, log shipping, optional cutover."""

    mode: ClassVar[MigrationMode] = MigrationMode.ONLINE
    auto_backup: bool
    create_log_backup_job: bool = False
    log_backup_interval_minutes: int = 15
    perform_cutover: bool = False


RunPlan = Union[OfflinePlan, OnlinePlan]


def plan_for(settings: Settings) -> RunPlan:
    """Resolve the configured mode into its plan."""
    if settings.migration_mode == MigrationMode.OFFLINE:
        return OfflinePlan(
            auto_backup=settings.auto_backup,
            last_backup_name=settings.last_backup_name,
        )
    return OnlinePlan(
        auto_backup=settings.auto_backup,
        create_log_backup_job=settings.create_log_backup_job,
        log_backup_interval_minutes=settings.log_backup_interval_minutes,
        perform_cutover=settings.perform_cutover,
    )


class MigrationOrchestrator:
    """Top-level controller for one migration run."""

    def __init__(
        self,
        settings: Settings,
        storage_service: StorageService,
        executor: BaseStatementExecutor,
        migration_client: MigrationServiceClient,
        monitor: Optional[MigrationMonitor] = None,
        history_service: Optional[MigrationHistoryService] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        credential_source: Optional[CredentialSource] = None,
    ):
        self._settings = settings
        self._credential_source = credential_source or settings.take_source_credential
        self._password_from_settings = credential_source is None
        self._storage = storage_service
        self._migration = migration_client
        self._history = history_service

        self._coordinator = BackupCoordinator(
            executor, settings.statement_timeout_seconds, clock
        )
        self._scheduler = LogShippingScheduler(
            executor,
            retry_attempts=settings.log_backup_retry_attempts,
            retry_interval_minutes=settings.log_backup_retry_interval_minutes,
            statement_timeout_seconds=settings.statement_timeout_seconds,
        )
        self._launcher = MigrationLauncher(storage_service, migration_client)
        self._monitor = monitor or MigrationMonitor(
            migration_client,
            interval_seconds=settings.poll_interval_seconds,
            max_duration_seconds=settings.max_poll_duration_seconds,
        )
        self._gate = CutoverGate(migration_client)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        credential_source: Optional[CredentialSource] = None,
    ) -> "MigrationOrchestrator":
        """Wire the orchestrator to real Azure clients and sqlcmd."""
        settings = settings or get_settings()
        clients = AzureClients(settings)
        return cls(
            settings=settings,
            storage_service=StorageService(clients),
            executor=SqlCmdExecutor(),
            migration_client=MigrationServiceClient(clients),
            history_service=MigrationHistoryService(clients) if settings.record_history else None,
            credential_source=credential_source,
        )

    def run(
        self,
        cancel_token: Optional[threading.Event] = None,
        confirm: Optional[ConfirmCallback] = None,
    ) -> MigrationRunResult:
        """
        Run the migration.

        Args:
            cancel_token: Set to stop polling between two polls
            confirm: Asked before cutover; without it cutover is declined

        The source credential is taken once, before any phase runs, and
        invalidated when the launch scope exits or the run fails.

        Returns:
            MigrationRunResult describing what happened

        Raises:
            MigrationError: Any fatal error, after the credential is invalidated
        """
        self._settings.validate_for_run(require_password=self._password_from_settings)
        plan = plan_for(self._settings)
        credential = self._credential_source()
        result = MigrationRunResult(mode=plan.mode)

        logger.info(
            f"Starting {plan.mode.value} migration of "
            f"{self._settings.source_database} from {self._settings.source_server}"
        )

        error_message = None
        try:
            if isinstance(plan, OfflinePlan):
                self._run_offline(plan, result, credential, cancel_token)
            else:
                self._run_online(plan, result, credential, cancel_token, confirm)
        except MigrationError as e:
            error_message = str(e)
            raise
        finally:
            credential.invalidate()
            self._record(result, error_message)

        logger.info(
            f"Migration run finished: outcome={result.outcome.value if result.outcome else '-'}"
        )
        return result

    # ===========================================
    # Run paths
    # ===========================================

    def _run_offline(
        self,
        plan: OfflinePlan,
        result: MigrationRunResult,
        credential: SourceCredential,
        cancel_token: Optional[threading.Event],
    ) -> None:
        if not plan.auto_backup and not plan.last_backup_name:
            raise MissingSeedArtifactError()

        target, storage, container_url = self._prepare_target()

        with credential:
            connection = self._source_connection(credential)
            last_backup_name = plan.last_backup_name

            if plan.auto_backup:
                self._install_storage_credential(connection, container_url)
                artifact = self._coordinator.take_full_backup(
                    connection, connection.database_name, container_url
                )
                result.artifacts.append(artifact)

                if last_backup_name:
                    logger.info(
                        f"Using configured last backup {last_backup_name} "
                        f"instead of {artifact.blob_name}"
                    )
                else:
                    last_backup_name = artifact.blob_name

            result.last_backup_name = last_backup_name
            result.handle = self._launcher.start(
                plan.mode, connection, target, storage, last_backup_name
            )

        self._await_end(plan.mode, result, cancel_token)

    def _run_online(
        self,
        plan: OnlinePlan,
        result: MigrationRunResult,
        credential: SourceCredential,
        cancel_token: Optional[threading.Event],
        confirm: Optional[ConfirmCallback],
    ) -> None:
        target, storage, container_url = self._prepare_target()

        with credential:
            connection = self._source_connection(credential)
            database = connection.database_name

            if plan.auto_backup or plan.create_log_backup_job:
                self._install_storage_credential(connection, container_url)

            if plan.auto_backup:
                result.artifacts.append(
                    self._coordinator.take_full_backup(connection, database, container_url)
                )
            elif self._storage.latest_backup(database, container_name=storage.container_name) is None:
                logger.warning(
                    f"No full backup of {database} found in {storage.container_name}; "
                    f"the migration cannot start restoring until one is uploaded"
                )

            if plan.create_log_backup_job:
                result.log_backup_job = self._scheduler.ensure_recurring_log_backup(
                    connection, database, container_url, plan.log_backup_interval_minutes
                )
            elif plan.auto_backup:
                try:
                    result.artifacts.append(
                        self._coordinator.take_log_backup(connection, database, container_url)
                    )
                except LogBackupError as e:
                    message = f"Log backup failed, continuing without it: {e}"
                    logger.warning(message)
                    result.warnings.append(message)

            result.handle = self._launcher.start(plan.mode, connection, target, storage)

        if not plan.perform_cutover:
            self._await_end(plan.mode, result, cancel_token)
            return

        outcome = self._monitor.wait(
            result.handle,
            plan.mode,
            cancel_token,
            stop_when=lambda observation: observation.is_ready_for_cutover,
        )
        result.poll_count += outcome.polls
        result.final_observation = outcome.observation
        if outcome.terminal:
            result.outcome = outcome_for(plan.mode, outcome.observation)
            return

        confirmed = bool(confirm and confirm(result.handle, outcome.observation))
        if not self._gate.request_cutover(result.handle, confirmed):
            result.outcome = RunOutcome.LEFT_RUNNING
            return

        result.cutover_performed = True
        self._await_end(plan.mode, result, cancel_token)

    # ===========================================
    # Shared steps
    # ===========================================

    def _prepare_target(self) -> tuple[TargetDescriptor, StorageDescriptor, str]:
        """Resolve target descriptors and make sure the container exists."""
        settings = self._settings

        if settings.create_migration_service:
            service_id = self._migration.ensure_migration_service(
                settings.resource_group,
                settings.effective_migration_service_name,
                settings.location,
            )
        else:
            service_id = settings.migration_service_resource_id

        target = TargetDescriptor(
            resource_group=settings.resource_group,
            managed_instance_name=settings.managed_instance_name,
            managed_instance_resource_id=settings.managed_instance_resource_id,
            target_database_name=settings.effective_target_database_name,
            migration_service_resource_id=service_id,
        )

        container_url = self._storage.ensure_container(settings.backup_container_name)
        storage = StorageDescriptor(
            storage_account_resource_id=settings.effective_storage_account_resource_id,
            container_name=settings.backup_container_name,
            account_key=self._storage.account_key,
        )
        return target, storage, container_url

    def _source_connection(self, credential: SourceCredential) -> SourceConnection:
        return SourceConnection(
            host=self._settings.source_server,
            port=self._settings.source_port,
            username=self._settings.source_username,
            database_name=self._settings.source_database,
            credential=credential,
        )

    def _install_storage_credential(self, connection: SourceConnection, container_url: str) -> None:
        token = self._storage.generate_access_token(
            self._settings.backup_container_name,
            expiry_hours=self._settings.sas_expiry_hours,
        )
        self._coordinator.ensure_storage_credential(connection, container_url, token)

    def _await_end(
        self,
        mode: MigrationMode,
        result: MigrationRunResult,
        cancel_token: Optional[threading.Event],
    ) -> None:
        outcome = self._monitor.wait(result.handle, mode, cancel_token)
        result.poll_count += outcome.polls
        result.final_observation = outcome.observation
        result.outcome = outcome_for(mode, outcome.observation)

    def _record(self, result: MigrationRunResult, error_message: Optional[str]) -> None:
        if self._history is None:
            return
        record = MigrationRunRecord.from_result(
            result,
            source_server=self._settings.source_server,
            source_database=self._settings.source_database,
            error_message=error_message,
        )
        try:
            self._history.save_run(record)
        except Exception as e:
            logger.error(f"Failed to save migration run record: {e}")
