"""
Client for the Azure database migration service (SQL Managed Instance).

Wraps the Data Migration management SDK: submits migrations, polls their
state and requests cutover. SDK errors are translated into the
package's exception hierarchy here.
"""

import logging
from typing import Optional

from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from azure.mgmt.datamigration.models import (
    AzureBlob,
    BackupConfiguration,
    DatabaseMigrationPropertiesSqlMi,
    DatabaseMigrationSqlMi,
    MigrationOperationInput,
    OfflineConfiguration,
    SourceLocation,
    SqlConnectionInformation,
    SqlMigrationService,
)

from ..config import AzureClients
from ..exceptions import CutoverError, MigrationServiceError, MigrationSubmissionError
from ..models import MigrationDescriptor, MigrationHandle, MigrationObservation

logger = logging.getLogger(__name__)


class MigrationServiceClient:
    """
    Service for the Data Migration control plane.

    Handles:
    - SQL migration service resources
    - Database migrations to SQL MI (create, get, cutover)
    """

    def __init__(self, azure_clients: Optional[AzureClients] = None, client=None):
        """
        Initialize the migration service client.

        Args:
            azure_clients: Azure clients instance. If None, uses the global one.
            client: Pre-built DataMigrationManagementClient, mainly for tests.
        """
        if client is None:
            from ..config.azure_clients import get_azure_clients

            client = (azure_clients or get_azure_clients()).datamigration_client
        self._client = client

    def ensure_migration_service(
        self, resource_group: str, service_name: str, location: str
    ) -> str:
        """
        Get or create the SQL migration service.

        Returns:
            Resource id of the service
        """
        try:
            service = self._client.sql_migration_services.get(
                resource_group_name=resource_group,
                sql_migration_service_name=service_name,
            )
            logger.info(f"Using existing migration service: {service_name}")
            return service.id
        except ResourceNotFoundError:
            pass
        except HttpResponseError as e:
            raise MigrationServiceError(
                f"Could not read migration service {service_name}: {e.message}"
            ) from e

        logger.info(f"Creating migration service {service_name} in {location}")
        try:
            service = self._client.sql_migration_services.begin_create_or_update(
                resource_group_name=resource_group,
                sql_migration_service_name=service_name,
                parameters=SqlMigrationService(location=location),
            ).result()
        except HttpResponseError as e:
            raise MigrationServiceError(
                f"Could not create migration service {service_name}: {e.message}"
            ) from e

        return service.id

    def build_request(self, descriptor: MigrationDescriptor) -> DatabaseMigrationSqlMi:
        """Translate a descriptor into the SDK request model."""
        source = descriptor.source_connection
        storage = descriptor.storage

        offline_configuration = None
        if descriptor.is_offline:
            offline_configuration = OfflineConfiguration(
                offline=True,
                last_backup_name=descriptor.last_backup_name,
            )

        properties = DatabaseMigrationPropertiesSqlMi(
            scope=descriptor.target.managed_instance_resource_id,
            migration_service=descriptor.target.migration_service_resource_id,
            source_database_name=source.database_name,
            source_sql_connection=SqlConnectionInformation(
                data_source=source.host if source.port == 1433 else source.server,
                authentication="SqlAuthentication",
                user_name=source.username,
                password=source.credential.reveal(),
                encrypt_connection=True,
                trust_server_certificate=True,
            ),
            backup_configuration=BackupConfiguration(
                source_location=SourceLocation(
                    azure_blob=AzureBlob(
                        storage_account_resource_id=storage.storage_account_resource_id,
                        account_key=storage.account_key,
                        blob_container_name=storage.container_name,
                    )
                )
            ),
            offline_configuration=offline_configuration,
        )
        return DatabaseMigrationSqlMi(properties=properties)

    def submit(self, descriptor: MigrationDescriptor) -> MigrationHandle:
        """
        Submit one migration request.

        Only the initial request is awaited; progress is observed through
        poll().

        Raises:
            MigrationSubmissionError: If the service rejects the request
        """
        target = descriptor.target
        request = self.build_request(descriptor)

        try:
            resource = self._client.database_migrations_sql_mi.begin_create_or_update(
                resource_group_name=target.resource_group,
                managed_instance_name=target.managed_instance_name,
                target_db_name=target.target_database_name,
                parameters=request,
                polling=False,
            ).result()
        except HttpResponseError as e:
            raise MigrationSubmissionError(
                f"Migration of {descriptor.source_connection.database_name} "
                f"to {target.managed_instance_name} was rejected: {e.message}"
            ) from e

        operation_id = None
        if resource is not None and resource.properties is not None:
            operation_id = resource.properties.migration_operation_id

        return MigrationHandle(
            resource_group=target.resource_group,
            managed_instance_name=target.managed_instance_name,
            target_database_name=target.target_database_name,
            migration_operation_id=operation_id,
        )

    def poll(self, handle: MigrationHandle) -> Optional[MigrationObservation]:
        """
        Read the current state of a migration.

        Returns:
            The observation, or None while the resource is not visible yet
        """
        try:
            resource = self._client.database_migrations_sql_mi.get(
                resource_group_name=handle.resource_group,
                managed_instance_name=handle.managed_instance_name,
                target_db_name=handle.target_database_name,
            )
        except ResourceNotFoundError:
            return None
        except HttpResponseError as e:
            raise MigrationServiceError(f"Could not read migration {handle}: {e.message}") from e

        properties = resource.properties if resource is not None else None
        if properties is None:
            return None

        return MigrationObservation(
            provisioning_state=properties.provisioning_state,
            migration_status=properties.migration_status,
            migration_operation_id=properties.migration_operation_id,
        )

    def cutover(self, handle: MigrationHandle) -> None:
        """
        Complete an online migration.

        Uses the operation id the service currently reports, falling back
        to the one returned on submission.

        Raises:
            CutoverError: If the cutover call fails
        """
        try:
            observation = self.poll(handle)
        except MigrationServiceError as e:
            raise CutoverError(f"Could not read migration {handle} before cutover: {e}") from e

        operation_id = (
            observation.migration_operation_id if observation else None
        ) or handle.migration_operation_id
        if not operation_id:
            raise CutoverError(f"No migration operation id available for {handle}")

        logger.info(f"Requesting cutover for {handle} (operation {operation_id})")
        try:
            self._client.database_migrations_sql_mi.begin_cutover(
                resource_group_name=handle.resource_group,
                managed_instance_name=handle.managed_instance_name,
                target_db_name=handle.target_database_name,
                parameters=MigrationOperationInput(migration_operation_id=operation_id),
            ).result()
        except HttpResponseError as e:
            raise CutoverError(f"Cutover of {handle} failed: {e.message}") from e
