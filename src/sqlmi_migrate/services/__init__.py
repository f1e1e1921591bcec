"""Services for SQL MI migration runs."""

from .backup_coordinator import BackupCoordinator
from .history_service import MigrationHistoryService
from .log_shipping import LogShippingScheduler, job_name_for
from .migration_service import MigrationServiceClient
from .sql_executor import BaseStatementExecutor, SqlCmdExecutor
from .storage_service import StorageService

__all__ = [
    "BackupCoordinator",
    "MigrationHistoryService",
    "LogShippingScheduler",
    "job_name_for",
    "MigrationServiceClient",
    "BaseStatementExecutor",
    "SqlCmdExecutor",
    "StorageService",
]
