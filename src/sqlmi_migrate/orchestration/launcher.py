"""
Migration launcher.

Checks mode preconditions and submits the migration request. Offline
preconditions are checked before anything is sent to the service.
"""

import logging
from typing import Optional

from ..exceptions import ArtifactNotFoundError, MissingSeedArtifactError
from ..models import (
    MigrationDescriptor,
    MigrationHandle,
    MigrationMode,
    SourceConnection,
    StorageDescriptor,
    TargetDescriptor,
)
from ..services import MigrationServiceClient, StorageService

logger = logging.getLogger(__name__)


class MigrationLauncher:
    """
    Builds and submits migration requests.

    Submitting twice for the same target is not guarded against here;
    callers start each target once per run.
    """

    def __init__(
        self,
        storage_service: StorageService,
        migration_client: MigrationServiceClient,
    ):
        self._storage = storage_service
        self._migration = migration_client

    def start(
        self,
        mode: MigrationMode,
        source: SourceConnection,
        target: TargetDescriptor,
        storage: StorageDescriptor,
        last_backup_name: Optional[str] = None,
    ) -> MigrationHandle:
        """
        Start a migration.

        Args:
            mode: Offline or online
            source: Source connection, credential still valid
            target: Target instance and migration service
            storage: Container holding the backups
            last_backup_name: Final backup to restore (offline only)

        Returns:
            Handle for polling and cutover

        Raises:
            MissingSeedArtifactError: Offline without a last backup name
            ArtifactNotFoundError: Offline last backup not in the container
            MigrationSubmissionError: The service rejected the request
        """
        if mode == MigrationMode.OFFLINE:
            if not last_backup_name:
                raise MissingSeedArtifactError()
            if not self._storage.blob_exists(last_backup_name, storage.container_name):
                raise ArtifactNotFoundError(storage.container_name, last_backup_name)
            logger.info(f"Verified last backup {last_backup_name} in {storage.container_name}")
        elif last_backup_name:
            logger.debug("Ignoring last backup name for online migration")

        descriptor = MigrationDescriptor(
            mode=mode,
            source_connection=source,
            target=target,
            storage=storage,
            last_backup_name=last_backup_name if mode == MigrationMode.OFFLINE else None,
        )

        logger.info(
            f"Starting {mode.value} migration of {source.database_name} "
            f"to {target.managed_instance_name}/{target.target_database_name}"
        )
        handle = self._migration.submit(descriptor)
        logger.info(f"Migration submitted: {handle}")
        return handle
