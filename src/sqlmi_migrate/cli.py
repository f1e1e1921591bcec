#!/usr/bin/env python3
"""
Command line entry point for SQL MI migrations.

Usage:
    sqlmi-migrate --mode Offline --managed-instance mi01 ...
    sqlmi-migrate --mode Online --create-log-backup-job --cutover
    sqlmi-migrate --history 10

Settings not given on the command line are read from the environment
or a .env file. The source password is read from SOURCE_PASSWORD or
prompted for.
"""

import argparse
import getpass
import logging
import sys
from typing import Optional

from azure.core.exceptions import AzureError
from pydantic import ValidationError as SettingsValidationError

from .config import AzureClients, Settings
from .exceptions import MigrationError
from .models import MigrationHandle, MigrationMode, MigrationObservation, RunOutcome
from .orchestration import MigrationOrchestrator
from .services import MigrationHistoryService

logger = logging.getLogger(__name__)

# argparse dest -> Settings field
_OVERRIDES = {
    "mode": "migration_mode",
    "auto_backup": "auto_backup",
    "sas_expiry_hours": "sas_expiry_hours",
    "last_backup_name": "last_backup_name",
    "create_log_backup_job": "create_log_backup_job",
    "log_backup_interval": "log_backup_interval_minutes",
    "cutover": "perform_cutover",
    "subscription_id": "subscription_id",
    "resource_group": "resource_group",
    "managed_instance": "managed_instance_name",
    "target_database": "target_database_name",
    "location": "location",
    "migration_service_name": "migration_service_name",
    "storage_account": "storage_account_name",
    "storage_account_resource_id": "storage_account_resource_id",
    "container": "backup_container_name",
    "source_server": "source_server",
    "source_port": "source_port",
    "source_user": "source_username",
    "source_database": "source_database",
    "poll_interval": "poll_interval_seconds",
    "max_poll_duration": "max_poll_duration_seconds",
    "record_history": "record_history",
    "log_level": "log_level",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sqlmi-migrate",
        description="Migrate a SQL Server database to Azure SQL Managed Instance",
    )

    run = parser.add_argument_group("migration")
    run.add_argument("--mode", choices=[m.value for m in MigrationMode],
                     help="Migration mode (default: Online)")
    run.add_argument("--auto-backup", action=argparse.BooleanOptionalAction, default=None,
                     help="Take the seed backup automatically (default: on)")
    run.add_argument("--sas-expiry-hours", type=int,
                     help="Lifetime of the container SAS token (default: 24)")
    run.add_argument("--last-backup-name",
                     help="Last backup file to restore (Offline)")
    run.add_argument("--create-log-backup-job", action="store_true", default=None,
                     help="Create a recurring log backup job (Online)")
    run.add_argument("--log-backup-interval", type=int,
                     help="Minutes between scheduled log backups (default: 15)")
    run.add_argument("--cutover", action="store_true", default=None,
                     help="Offer cutover once logs are shipping (Online)")
    run.add_argument("--yes", action="store_true",
                     help="Confirm cutover without prompting")

    azure = parser.add_argument_group("azure")
    azure.add_argument("--subscription-id")
    azure.add_argument("--resource-group")
    azure.add_argument("--managed-instance")
    azure.add_argument("--target-database")
    azure.add_argument("--location")
    azure.add_argument("--migration-service-name",
                       help="Default: sqlmig-svc-<managed instance>")
    azure.add_argument("--storage-account")
    azure.add_argument("--storage-account-resource-id")
    azure.add_argument("--container")

    source = parser.add_argument_group("source")
    source.add_argument("--source-server")
    source.add_argument("--source-port", type=int)
    source.add_argument("--source-user")
    source.add_argument("--source-database")

    misc = parser.add_argument_group("polling and output")
    misc.add_argument("--poll-interval", type=float,
                      help="Seconds between status polls (default: 20)")
    misc.add_argument("--max-poll-duration", type=float,
                      help="Give up polling after this many seconds")
    misc.add_argument("--record-history", action="store_true", default=None,
                      help="Record the run in Azure Table Storage")
    misc.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    misc.add_argument("--history", type=int, nargs="?", const=20, metavar="N",
                      help="List the N most recent recorded runs (default 20) and exit")

    return parser


def load_settings(args: argparse.Namespace, prompt_password: bool = True) -> Settings:
    """Merge command line overrides onto environment settings."""
    overrides = {
        field: getattr(args, dest)
        for dest, field in _OVERRIDES.items()
        if getattr(args, dest, None) is not None
    }
    settings = Settings(**overrides)

    if prompt_password and settings.source_password is None and sys.stdin.isatty():
        password = getpass.getpass(f"Password for {settings.source_username or 'source'}: ")
        if password:
            settings = Settings(**overrides, source_password=password)

    return settings


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    # Suppress Azure SDK verbose logging
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("azure.core.pipeline.policies.http_logging_policy").setLevel(logging.WARNING)


def prompt_cutover(handle: MigrationHandle, observation: MigrationObservation) -> bool:
    """
    Ask the operator before completing the migration.

    Without an interactive stdin the cutover is declined and the
    migration is left running.
    """
    if not sys.stdin.isatty():
        logger.warning(
            f"Migration {handle} is ready for cutover but stdin is not interactive; "
            f"rerun with --cutover --yes to complete it"
        )
        return False

    print(f"\nMigration {handle} is ready for cutover ({observation.describe()}).")
    try:
        answer = input("Type 'yes' to cut over now, anything else to leave it running: ")
    except EOFError:
        return False
    return answer.strip().lower() == "yes"


def show_history(settings: Settings, limit: int) -> int:
    """Print recorded runs, newest first."""
    try:
        records = MigrationHistoryService(AzureClients(settings)).get_recent_runs(limit)
    except AzureError as e:
        logger.error(f"Could not read run history: {e}")
        return 1

    for record in records:
        outcome = record.outcome.value if record.outcome else "-"
        print(
            f"{record.created_at:%Y-%m-%d %H:%M:%S}  {record.mode.value:<7}  "
            f"{record.source_server}/{record.source_database} -> "
            f"{record.managed_instance_name}/{record.target_database_name}  {outcome}"
        )
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args, prompt_password=args.history is None)
    except SettingsValidationError as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    if args.history is not None:
        return show_history(settings, args.history)

    confirm = (lambda handle, observation: True) if args.yes else prompt_cutover

    try:
        result = MigrationOrchestrator.from_settings(settings).run(confirm=confirm)
    except KeyboardInterrupt:
        logger.warning(
            "Interrupted. A submitted migration keeps running in Azure; "
            "run again or use the portal to follow it."
        )
        return 130
    except MigrationError as e:
        logger.error(f"Migration failed: {e}")
        return 1

    for warning in result.warnings:
        logger.warning(warning)

    if result.final_observation is not None:
        logger.info(f"Final state: {result.final_observation.describe()}")
    if result.outcome == RunOutcome.LEFT_RUNNING:
        logger.info("Migration left running without cutover")

    return 1 if result.outcome == RunOutcome.FAILED else 0


if __name__ == "__main__":
    sys.exit(main())
