"""
Application settings and configuration management.

Loads the operator surface of a migration run from environment variables
with sensible defaults.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings

from ..exceptions import ConfigurationError, ValidationError
from ..models.connection import SourceCredential
from ..models.migration import MigrationMode
from ..utils.validators import validate_container_name, validate_database_name

MIGRATION_SERVICE_PREFIX = "sqlmig-svc-"


class Settings(BaseSettings):
    """Migration settings loaded from environment variables."""

    # Logging
    log_level: str = Field(default="INFO")

    # Run behaviour
    migration_mode: MigrationMode = Field(default=MigrationMode.ONLINE)
    auto_backup: bool = Field(default=True)
    sas_expiry_hours: int = Field(default=24, ge=1, le=24 * 365)
    last_backup_name: Optional[str] = Field(default=None)
    create_log_backup_job: bool = Field(default=False)
    log_backup_interval_minutes: int = Field(default=15, ge=1, le=1440)
    log_backup_retry_attempts: int = Field(default=3, ge=0)
    log_backup_retry_interval_minutes: int = Field(default=5, ge=0)
    perform_cutover: bool = Field(default=False)
    poll_interval_seconds: float = Field(default=20, ge=0)
    max_poll_duration_seconds: Optional[float] = Field(default=None)

    # Azure target
    subscription_id: Optional[str] = Field(default=None)
    resource_group: Optional[str] = Field(default=None)
    managed_instance_name: Optional[str] = Field(default=None)
    target_database_name: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None)
    migration_service_name: Optional[str] = Field(default=None)
    create_migration_service: bool = Field(default=True)

    # Azure Storage
    storage_account_name: Optional[str] = Field(default=None)
    storage_account_resource_id: Optional[str] = Field(default=None)
    storage_connection_string: str = Field(default="UseDevelopmentStorage=true")
    backup_container_name: str = Field(default="migration-backups")

    # Source SQL Server
    source_server: Optional[str] = Field(default=None)
    source_port: int = Field(default=1433)
    source_username: Optional[str] = Field(default=None)
    source_password: Optional[SecretStr] = Field(default=None)
    source_database: Optional[str] = Field(default=None)
    statement_timeout_seconds: int = Field(default=60, ge=1)

    # Run history (optional)
    record_history: bool = Field(default=False)
    history_table_name: str = Field(default="migrationhistory")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @property
    def effective_migration_service_name(self) -> Optional[str]:
        """Migration service name, derived from the instance when unset."""
        if self.migration_service_name:
            return self.migration_service_name
        if self.managed_instance_name:
            return f"{MIGRATION_SERVICE_PREFIX}{self.managed_instance_name}"
        return None

    @property
    def effective_target_database_name(self) -> Optional[str]:
        """Target database name, defaults to the source database name."""
        return self.target_database_name or self.source_database

    @property
    def effective_storage_account_resource_id(self) -> Optional[str]:
        """Storage account ARM id, derived when not configured."""
        if self.storage_account_resource_id:
            return self.storage_account_resource_id
        if self.subscription_id and self.resource_group and self.storage_account_name:
            return (
                f"/subscriptions/{self.subscription_id}"
                f"/resourceGroups/{self.resource_group}"
                f"/providers/Microsoft.Storage/storageAccounts/{self.storage_account_name}"
            )
        return None

    @property
    def managed_instance_resource_id(self) -> str:
        """ARM id of the target managed instance."""
        return (
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{self.resource_group}"
            f"/providers/Microsoft.Sql/managedInstances/{self.managed_instance_name}"
        )

    @property
    def migration_service_resource_id(self) -> str:
        """ARM id of the SQL migration service."""
        return (
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{self.resource_group}"
            f"/providers/Microsoft.DataMigration/sqlMigrationServices/"
            f"{self.effective_migration_service_name}"
        )

    def validate_for_run(self, require_password: bool = True) -> None:
        """
        Check that every value a run needs is present.

        Args:
            require_password: False when the password comes from elsewhere

        Raises:
            ConfigurationError: Listing all missing settings
            ValidationError: A database or container name is unusable
        """
        required = {
            "subscription_id": self.subscription_id,
            "resource_group": self.resource_group,
            "managed_instance_name": self.managed_instance_name,
            "source_server": self.source_server,
            "source_username": self.source_username,
            "source_database": self.source_database,
        }
        if require_password:
            required["source_password"] = self.source_password
        missing = [name for name, value in required.items() if not value]

        if not self.effective_storage_account_resource_id:
            missing.append("storage_account_resource_id (or storage_account_name)")
        if self.create_migration_service and not self.location:
            missing.append("location")

        if missing:
            raise ConfigurationError(
                f"Missing required settings: {', '.join(missing)}"
            )

        for field, (is_valid, error) in {
            "source_database": validate_database_name(self.source_database),
            "backup_container_name": validate_container_name(self.backup_container_name),
        }.items():
            if not is_valid:
                raise ValidationError(field, error)

    def take_source_credential(self) -> SourceCredential:
        """
        Move the source password out of these settings.

        The password is cleared here, so the returned handle is the only
        holder. A second call raises ConfigurationError.
        """
        secret, self.source_password = self.source_password, None
        if secret is None:
            raise ConfigurationError(
                "source_password is not set or has already been taken"
            )
        return SourceCredential(secret.get_secret_value())


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
