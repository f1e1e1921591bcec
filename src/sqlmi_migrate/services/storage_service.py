"""
Azure Storage service for the migration backup container.

Provides container provisioning, SAS tokens for the source server's
backup-to-URL credential, and blob lookups used to verify seed backups.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import ContainerSasPermissions, generate_container_sas

from ..config import AzureClients, get_settings
from ..exceptions import StorageError
from ..models import BackupKind, StorageAccessToken, is_artifact_of
from ..models.artifact import safe_database_token

logger = logging.getLogger(__name__)

# Backup to URL needs read, write, delete and list on the container
BACKUP_PERMISSIONS = ContainerSasPermissions(read=True, write=True, delete=True, list=True)


class StorageService:
    """
    Service for the blob container that stages migration backups.

    Handles:
    - Container creation and URLs
    - Container SAS tokens
    - Backup blob listing and existence checks
    """

    def __init__(self, azure_clients: Optional[AzureClients] = None):
        """
        Initialize storage service.

        Args:
            azure_clients: Azure clients instance. If None, creates a new one.
        """
        from ..config.azure_clients import get_azure_clients

        self._clients = azure_clients or get_azure_clients()
        self._settings = get_settings() if azure_clients is None else azure_clients.settings

    @property
    def account_name(self) -> str:
        return self._clients.blob_service_client.account_name

    @property
    def account_key(self) -> str:
        """Shared key of the storage account, from the connection string."""
        return self._clients.blob_service_client.credential.account_key

    def ensure_container(self, container_name: Optional[str] = None) -> str:
        """
        Create the backup container if it does not exist.

        Returns:
            URL of the container
        """
        container = container_name or self._settings.backup_container_name
        container_client = self._clients.get_blob_container_client(container)

        try:
            container_client.create_container()
            logger.info(f"Created backup container: {container}")
        except ResourceExistsError:
            pass
        except AzureError as e:
            raise StorageError(f"Could not create container '{container}': {e}") from e

        return container_client.url

    def container_url(self, container_name: Optional[str] = None) -> str:
        """URL of the container, as used in BACKUP ... TO URL statements."""
        container = container_name or self._settings.backup_container_name
        return self._clients.get_blob_container_client(container).url

    def generate_access_token(
        self,
        container_name: Optional[str] = None,
        permissions: ContainerSasPermissions = BACKUP_PERMISSIONS,
        expiry_hours: int = 24,
    ) -> StorageAccessToken:
        """
        Generate a container SAS token.

        Args:
            container_name: Optional custom container name
            permissions: Permissions granted by the token
            expiry_hours: Hours until the token expires

        Returns:
            StorageAccessToken for the container
        """
        container = container_name or self._settings.backup_container_name
        expiry = datetime.utcnow() + timedelta(hours=expiry_hours)

        try:
            sas_token = generate_container_sas(
                account_name=self.account_name,
                container_name=container,
                account_key=self.account_key,
                permission=permissions,
                expiry=expiry,
            )
        except (AttributeError, ValueError) as e:
            raise StorageError(
                f"Could not sign a SAS token for '{container}'; "
                f"the storage connection string must include an account key"
            ) from e

        logger.info(
            f"Generated SAS token for container {container} "
            f"(expires {expiry.isoformat()}Z)"
        )
        return StorageAccessToken(
            value=sas_token,
            expiry=expiry,
            container_url=self.container_url(container),
        )

    def blob_exists(self, blob_name: str, container_name: Optional[str] = None) -> bool:
        """
        Check whether a blob exists in the container.

        Args:
            blob_name: Name of the blob
            container_name: Optional custom container name
        """
        container = container_name or self._settings.backup_container_name
        blob_client = self._clients.get_blob_container_client(container).get_blob_client(
            blob_name
        )
        try:
            return blob_client.exists()
        except AzureError as e:
            raise StorageError(f"Could not check blob '{blob_name}': {e}") from e

    def list_backups(
        self,
        prefix: Optional[str] = None,
        container_name: Optional[str] = None,
        max_results: Optional[int] = 1000,
    ) -> list[dict]:
        """
        List backup files in the container.

        Args:
            prefix: Filter by blob name prefix (e.g., "Sales_FULL_")
            container_name: Optional custom container name
            max_results: Maximum number of results, None for all

        Returns:
            List of backup metadata dictionaries
        """
        container = container_name or self._settings.backup_container_name
        container_client = self._clients.get_blob_container_client(container)

        backups = []
        for blob in container_client.list_blobs(name_starts_with=prefix):
            if max_results is not None and len(backups) >= max_results:
                break

            backups.append({
                "name": blob.name,
                "size": blob.size,
                "last_modified": blob.last_modified.isoformat() if blob.last_modified else None,
            })

        return backups

    def latest_backup(
        self,
        database_name: str,
        kind: BackupKind = BackupKind.FULL,
        container_name: Optional[str] = None,
    ) -> Optional[str]:
        """
        Find the newest artifact of a database by name order.

        Returns:
            Blob name of the newest matching artifact, or None
        """
        prefix = f"{safe_database_token(database_name)}_{kind.value}_"
        names = [
            backup["name"]
            for backup in self.list_backups(
                prefix=prefix, container_name=container_name, max_results=None
            )
            if is_artifact_of(backup["name"], database_name, kind)
        ]
        return max(names) if names else None
