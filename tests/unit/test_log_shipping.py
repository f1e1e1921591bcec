"""
Recurring log backup job creation.
"""

import pytest

from sqlmi_migrate.exceptions import LogShippingJobError
from sqlmi_migrate.services import LogShippingScheduler, job_name_for
from sqlmi_migrate.services.log_shipping import build_job_step_command


@pytest.fixture
def scheduler(executor):
    return LogShippingScheduler(executor, retry_attempts=3, retry_interval_minutes=5)


class TestEnsureRecurringLogBackup:
    def test_creates_job_when_missing(self, scheduler, executor, connection, container_url):
        executor.scalars["SELECT COUNT(*) FROM msdb.dbo.sysjobs"] = "0"

        job = scheduler.ensure_recurring_log_backup(connection, "Sales", container_url, 15)

        assert job == job_name_for("Sales") == "sqlmig_logbackup_Sales"
        [create] = executor.matching("sp_add_job ")
        assert "IF NOT EXISTS" in create
        assert "@retry_attempts = 3" in create
        assert "@retry_interval = 5" in create
        assert "@freq_subday_interval = 15" in create
        assert "sp_attach_schedule" in create
        assert "sp_add_jobserver" in create

    def test_existing_job_is_left_untouched(self, scheduler, executor, connection, container_url):
        executor.scalars["SELECT COUNT(*) FROM msdb.dbo.sysjobs"] = "1"

        job = scheduler.ensure_recurring_log_backup(connection, "Sales", container_url, 15)

        assert job == "sqlmig_logbackup_Sales"
        assert executor.matching("sp_add_job") == []
        assert len(executor.statements) == 1

    def test_failure_raises_job_error(self, scheduler, executor, connection, container_url):
        executor.scalars["SELECT COUNT(*) FROM msdb.dbo.sysjobs"] = "0"
        executor.failures["sp_add_job"] = "SQL Server Agent is not running"

        with pytest.raises(LogShippingJobError):
            scheduler.ensure_recurring_log_backup(connection, "Sales", container_url, 15)


class TestJobStepCommand:
    def test_timestamp_is_computed_at_execution(self, container_url):
        command = build_job_step_command("Sales", container_url)
        assert "FORMAT(SYSUTCDATETIME(), 'yyyyMMdd_HHmmss')" in command
        assert f"N'{container_url}/Sales_LOG_' + @stamp + N'.trn'" in command
        assert "BACKUP LOG [Sales] TO URL = @url" in command

    def test_step_command_quotes_are_doubled_inside_job(self, scheduler, executor, connection, container_url):
        executor.scalars["SELECT COUNT(*) FROM msdb.dbo.sysjobs"] = "0"
        scheduler.ensure_recurring_log_backup(connection, "Sales", container_url, 15)

        [create] = executor.matching("sp_add_jobstep")
        assert "FORMAT(SYSUTCDATETIME(), ''yyyyMMdd_HHmmss'')" in create
