"""Custom exceptions for SQL MI migration runs."""


class MigrationError(Exception):
    """Base exception for all migration errors."""

    pass


class ConfigurationError(MigrationError):
    """Error in configuration."""

    pass


class ValidationError(MigrationError):
    """Error in input validation."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Validation error for '{field}': {message}")


class NotFoundError(MigrationError):
    """Resource not found."""

    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} '{resource_id}' not found")


class StorageError(MigrationError):
    """Error with Azure Storage operations."""

    pass


class StatementExecutionError(MigrationError):
    """A statement could not be executed against the source server."""

    def __init__(self, server: str, message: str, details: str = None):
        self.server = server
        self.details = details
        super().__init__(f"[{server}] {message}")


class CredentialProvisioningError(MigrationError):
    """The storage credential could not be created on the source server."""

    pass


class CredentialInvalidatedError(MigrationError):
    """A source credential was used after it was invalidated."""

    pass


class BackupExecutionError(MigrationError):
    """Error during backup execution."""

    def __init__(self, database_name: str, message: str, details: str = None):
        self.database_name = database_name
        self.details = details
        super().__init__(f"Backup failed for '{database_name}': {message}")


class LogBackupError(BackupExecutionError):
    """A single transaction log backup failed."""

    pass


class LogShippingJobError(MigrationError):
    """The recurring log backup job could not be created."""

    pass


class MissingSeedArtifactError(MigrationError):
    """Offline migration requested without a last backup name."""

    def __init__(self):
        super().__init__(
            "Offline migration requires the name of the last backup file "
            "(enable automatic backup or provide a last backup name)"
        )


class ArtifactNotFoundError(NotFoundError):
    """A referenced backup blob does not exist in the container."""

    def __init__(self, container_name: str, blob_name: str):
        self.container_name = container_name
        super().__init__("Backup blob", f"{container_name}/{blob_name}")


class MigrationServiceError(MigrationError):
    """Error talking to the Azure database migration service."""

    pass


class MigrationSubmissionError(MigrationServiceError):
    """The migration request was rejected or could not be sent."""

    pass


class CutoverError(MigrationServiceError):
    """The cutover request failed."""

    pass


class MonitorCancelledError(MigrationError):
    """Polling was cancelled by the caller."""

    pass


class MonitorTimeoutError(MigrationError):
    """Polling exceeded the configured maximum duration."""

    def __init__(self, elapsed_seconds: float):
        self.elapsed_seconds = elapsed_seconds
        super().__init__(
            f"Migration still in progress after {elapsed_seconds:.0f} seconds"
        )


__all__ = [
    "MigrationError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "StorageError",
    "StatementExecutionError",
    "CredentialProvisioningError",
    "CredentialInvalidatedError",
    "BackupExecutionError",
    "LogBackupError",
    "LogShippingJobError",
    "MissingSeedArtifactError",
    "ArtifactNotFoundError",
    "MigrationServiceError",
    "MigrationSubmissionError",
    "CutoverError",
    "MonitorCancelledError",
    "MonitorTimeoutError",
]
