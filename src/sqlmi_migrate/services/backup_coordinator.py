"""
Backup coordinator for the source SQL Server.

Installs the SAS credential that lets the server write to the backup
container, and issues full (seed) and log backups to URL.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from ..exceptions import (
    BackupExecutionError,
    CredentialProvisioningError,
    LogBackupError,
    StatementExecutionError,
)
from ..models import BackupArtifact, BackupKind, SourceConnection, StorageAccessToken
from ..utils.validators import quote_identifier, quote_literal
from .sql_executor import BaseStatementExecutor

logger = logging.getLogger(__name__)

SAS_IDENTITY = "SHARED ACCESS SIGNATURE"


class BackupCoordinator:
    """
    Issues backup statements against the source server.

    Full backups are copy-only so they do not disturb the source's own
    backup chain; every backup is checksum-verified and compressed.
    """

    def __init__(
        self,
        executor: BaseStatementExecutor,
        statement_timeout_seconds: int = 60,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._executor = executor
        self._statement_timeout = statement_timeout_seconds
        self._clock = clock

    def ensure_storage_credential(
        self,
        connection: SourceConnection,
        container_url: str,
        token: StorageAccessToken,
    ) -> None:
        """
        Create or replace the server credential named after the container URL.

        Raises:
            CredentialProvisioningError: If the statement fails
        """
        name = container_url.rstrip("/")
        secret = quote_literal(token.bare_token)
        identity = quote_literal(SAS_IDENTITY)

        statement = (
            f"IF EXISTS (SELECT 1 FROM sys.credentials WHERE name = {quote_literal(name)})\n"
            f"    ALTER CREDENTIAL {quote_identifier(name)} "
            f"WITH IDENTITY = {identity}, SECRET = {secret};\n"
            f"ELSE\n"
            f"    CREATE CREDENTIAL {quote_identifier(name)} "
            f"WITH IDENTITY = {identity}, SECRET = {secret};"
        )

        logger.info(f"Provisioning storage credential for {name} on {connection.host}")
        try:
            self._executor.execute(connection, statement, self._statement_timeout)
        except StatementExecutionError as e:
            raise CredentialProvisioningError(
                f"Could not provision credential for {name}: {e}"
            ) from e

    def take_full_backup(
        self,
        connection: SourceConnection,
        database_name: str,
        container_url: str,
    ) -> BackupArtifact:
        """
        Take a copy-only full backup to the container.

        Runs without a query timeout since large databases take hours.

        Raises:
            BackupExecutionError: If the backup statement fails
        """
        artifact = BackupArtifact.create(
            BackupKind.FULL, database_name, self._clock(), container_url
        )
        statement = (
            f"BACKUP DATABASE {quote_identifier(database_name)} "
            f"TO URL = {quote_literal(artifact.blob_url)} "
            f"WITH COPY_ONLY, CHECKSUM, COMPRESSION, STATS = 10;"
        )

        logger.info(f"Starting full backup of {database_name} to {artifact.blob_name}")
        try:
            self._executor.execute(connection, statement, timeout_seconds=None)
        except StatementExecutionError as e:
            raise BackupExecutionError(database_name, str(e), details=e.details) from e

        logger.info(f"Full backup completed: {artifact.blob_name}")
        return artifact

    def take_log_backup(
        self,
        connection: SourceConnection,
        database_name: str,
        container_url: str,
        timeout_seconds: Optional[int] = None,
    ) -> BackupArtifact:
        """
        Take a single transaction log backup to the container.

        Raises:
            LogBackupError: If the backup statement fails
        """
        artifact = BackupArtifact.create(
            BackupKind.LOG, database_name, self._clock(), container_url
        )
        statement = (
            f"BACKUP LOG {quote_identifier(database_name)} "
            f"TO URL = {quote_literal(artifact.blob_url)} "
            f"WITH CHECKSUM, COMPRESSION;"
        )

        logger.info(f"Starting log backup of {database_name} to {artifact.blob_name}")
        try:
            self._executor.execute(connection, statement, timeout_seconds=timeout_seconds)
        except StatementExecutionError as e:
            raise LogBackupError(database_name, str(e), details=e.details) from e

        logger.info(f"Log backup completed: {artifact.blob_name}")
        return artifact
