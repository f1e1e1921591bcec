"""
Azure client factory for creating and managing Azure SDK clients.

Provides lazy initialization of Azure clients to avoid unnecessary connections.
"""

from functools import cached_property
from typing import Optional

from azure.data.tables import TableServiceClient
from azure.identity import DefaultAzureCredential
from azure.mgmt.datamigration import DataMigrationManagementClient
from azure.storage.blob import BlobServiceClient

from ..exceptions import ConfigurationError
from .settings import Settings, get_settings


class AzureClients:
    """
    Factory class for Azure SDK clients.

    Provides lazy-loaded, cached clients for:
    - Blob Storage (backup container, SAS tokens)
    - Table Storage (run history)
    - Data Migration management plane
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize Azure clients factory.

        Args:
            settings: Application settings. If None, loads from environment.
        """
        self._settings = settings or get_settings()

    @property
    def settings(self) -> Settings:
        """Get settings instance."""
        return self._settings

    @cached_property
    def credential(self) -> DefaultAzureCredential:
        """
        Get Azure credential for the control plane.

        Uses DefaultAzureCredential which tries multiple auth methods:
        - Environment variables
        - Managed Identity
        - Azure CLI
        - etc.
        """
        return DefaultAzureCredential()

    @cached_property
    def blob_service_client(self) -> BlobServiceClient:
        """
        Get Blob Storage service client.

        Built from the connection string so the account key is available
        for signing container SAS tokens.
        """
        return BlobServiceClient.from_connection_string(
            self._settings.storage_connection_string
        )

    @cached_property
    def table_service_client(self) -> TableServiceClient:
        """Get Table Storage service client."""
        return TableServiceClient.from_connection_string(
            self._settings.storage_connection_string
        )

    @cached_property
    def datamigration_client(self) -> DataMigrationManagementClient:
        """Get the Data Migration management client."""
        if not self._settings.subscription_id:
            raise ConfigurationError("subscription_id is required for the migration service")
        return DataMigrationManagementClient(
            credential=self.credential,
            subscription_id=self._settings.subscription_id,
        )

    def get_blob_container_client(self, container_name: Optional[str] = None):
        """
        Get a container client for blob operations.

        Args:
            container_name: Name of the container. Defaults to backup container.

        Returns:
            ContainerClient instance.
        """
        name = container_name or self._settings.backup_container_name
        return self.blob_service_client.get_container_client(name)

    def get_table_client(self, table_name: str):
        """
        Get a table client for table operations.

        Args:
            table_name: Name of the table.

        Returns:
            TableClient instance.
        """
        return self.table_service_client.get_table_client(table_name)


# Global instance for convenience
_azure_clients: Optional[AzureClients] = None


def get_azure_clients() -> AzureClients:
    """Get or create global Azure clients instance."""
    global _azure_clients
    if _azure_clients is None:
        _azure_clients = AzureClients()
    return _azure_clients
