"""
Recurring log backup job for online migrations.

Creates a SQL Server Agent job on the source server that backs up the
transaction log to the migration container on a fixed interval. The job
runs on its own once created; nothing here supervises it.
"""

import logging

from ..exceptions import LogShippingJobError, StatementExecutionError
from ..models import BackupKind, SourceConnection
from ..models.artifact import safe_database_token
from ..utils.validators import quote_identifier, quote_literal
from .sql_executor import BaseStatementExecutor

logger = logging.getLogger(__name__)

JOB_PREFIX = "sqlmig_logbackup_"


def job_name_for(database_name: str) -> str:
    """Agent job name derived from the database name."""
    return f"{JOB_PREFIX}{safe_database_token(database_name)}"


def build_job_step_command(database_name: str, container_url: str) -> str:
    """
    T-SQL run by each job execution.

    The timestamp is computed when the step runs, so every execution
    writes a new blob named like the ones BackupCoordinator produces.
    """
    prefix = f"{container_url.rstrip('/')}/{safe_database_token(database_name)}_{BackupKind.LOG.value}_"
    return (
        "DECLARE @stamp nvarchar(15) = FORMAT(SYSUTCDATETIME(), 'yyyyMMdd_HHmmss');\n"
        f"DECLARE @url nvarchar(4000) = {quote_literal(prefix)} + @stamp + "
        f"N'.{BackupKind.LOG.extension}';\n"
        f"BACKUP LOG {quote_identifier(database_name)} TO URL = @url "
        "WITH CHECKSUM, COMPRESSION;"
    )


class LogShippingScheduler:
    """
    Creates the recurring log backup job.

    Retry policy for each execution is fixed when the job is created.
    """

    def __init__(
        self,
        executor: BaseStatementExecutor,
        retry_attempts: int = 3,
        retry_interval_minutes: int = 5,
        statement_timeout_seconds: int = 60,
    ):
        self._executor = executor
        self._retry_attempts = retry_attempts
        self._retry_interval = retry_interval_minutes
        self._statement_timeout = statement_timeout_seconds

    def job_exists(self, connection: SourceConnection, job_name: str) -> bool:
        """Check msdb for an agent job with the given name."""
        count = self._executor.query_scalar(
            connection,
            f"SELECT COUNT(*) FROM msdb.dbo.sysjobs WHERE name = {quote_literal(job_name)};",
            self._statement_timeout,
        )
        return bool(count) and count.isdigit() and int(count) > 0

    def ensure_recurring_log_backup(
        self,
        connection: SourceConnection,
        database_name: str,
        container_url: str,
        interval_minutes: int,
    ) -> str:
        """
        Create the log backup job unless it already exists.

        Args:
            connection: Source connection
            database_name: Database whose log is backed up
            container_url: Migration container URL
            interval_minutes: Minutes between executions

        Returns:
            Name of the agent job

        Raises:
            LogShippingJobError: If the job cannot be checked or created
        """
        job_name = job_name_for(database_name)

        try:
            if self.job_exists(connection, job_name):
                logger.info(f"Log backup job {job_name} already exists, leaving it untouched")
                return job_name

            statement = self._build_create_statement(
                job_name, database_name, container_url, interval_minutes
            )
            self._executor.execute(connection, statement, self._statement_timeout)
        except StatementExecutionError as e:
            raise LogShippingJobError(f"Could not create job {job_name}: {e}") from e

        logger.info(
            f"Created log backup job {job_name} "
            f"(every {interval_minutes} min, {self._retry_attempts} retries)"
        )
        return job_name

    def _build_create_statement(
        self,
        job_name: str,
        database_name: str,
        container_url: str,
        interval_minutes: int,
    ) -> str:
        job = quote_literal(job_name)
        schedule = quote_literal(f"{job_name}_schedule")
        command = quote_literal(build_job_step_command(database_name, container_url))

        return (
            f"IF NOT EXISTS (SELECT 1 FROM msdb.dbo.sysjobs WHERE name = {job})\n"
            "BEGIN\n"
            f"    EXEC msdb.dbo.sp_add_job @job_name = {job}, @enabled = 1,\n"
            f"        @description = N'Transaction log backups for SQL MI migration';\n"
            f"    EXEC msdb.dbo.sp_add_jobstep @job_name = {job},\n"
            "        @step_name = N'Backup log to URL', @subsystem = N'TSQL',\n"
            f"        @database_name = N'master', @command = {command},\n"
            f"        @retry_attempts = {self._retry_attempts},\n"
            f"        @retry_interval = {self._retry_interval};\n"
            f"    EXEC msdb.dbo.sp_add_schedule @schedule_name = {schedule},\n"
            "        @freq_type = 4, @freq_interval = 1,\n"
            f"        @freq_subday_type = 4, @freq_subday_interval = {interval_minutes};\n"
            f"    EXEC msdb.dbo.sp_attach_schedule @job_name = {job}, @schedule_name = {schedule};\n"
            f"    EXEC msdb.dbo.sp_add_jobserver @job_name = {job};\n"
            "END"
        )
