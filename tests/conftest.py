"""
Root conftest.py - sys.path, fakes for external collaborators, settings.

Lets the orchestration code run without Azure resources or sqlcmd:
statements, storage and the migration service are replaced by recording
fakes.
"""

import os
import sys
from datetime import datetime, timedelta
from typing import Optional

import pytest

# Add src/ to sys.path so 'sqlmi_migrate' is importable without installing
SRC_ROOT = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")
if SRC_ROOT not in sys.path:
    sys.path.insert(0, SRC_ROOT)

from sqlmi_migrate.config import Settings
from sqlmi_migrate.exceptions import StatementExecutionError
from sqlmi_migrate.models import (
    MigrationHandle,
    MigrationObservation,
    SourceConnection,
    SourceCredential,
    StorageAccessToken,
)
from sqlmi_migrate.services import BaseStatementExecutor

CONTAINER_URL = "https://migbackups.blob.core.windows.net/migration-backups"
FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0)


class FakeExecutor(BaseStatementExecutor):
    """Records statements; fails those containing a configured marker."""

    def __init__(self):
        self.statements: list[tuple[str, Optional[int]]] = []
        self.failures: dict[str, str] = {}
        self.scalars: dict[str, str] = {}

    def execute(self, connection, statement, timeout_seconds=60):
        connection.credential.reveal()
        self.statements.append((statement, timeout_seconds))
        for marker, message in self.failures.items():
            if marker in statement:
                raise StatementExecutionError(connection.host, message)
        for marker, output in self.scalars.items():
            if marker in statement:
                return output + "\n"
        return ""

    def matching(self, marker: str) -> list[str]:
        return [s for s, _ in self.statements if marker in s]


class FakeStorage:
    """Stands in for StorageService."""

    account_key = "fake-account-key"

    def __init__(self):
        self.blobs: set[str] = set()
        self.exists_calls: list[str] = []
        self.tokens_issued = 0

    def ensure_container(self, container_name=None):
        return CONTAINER_URL

    def container_url(self, container_name=None):
        return CONTAINER_URL

    def generate_access_token(self, container_name=None, permissions=None, expiry_hours=24):
        self.tokens_issued += 1
        return StorageAccessToken(
            value="?sv=2023-01-03&sig=abc",
            expiry=FIXED_NOW + timedelta(hours=expiry_hours),
            container_url=CONTAINER_URL,
        )

    def blob_exists(self, blob_name, container_name=None):
        self.exists_calls.append(blob_name)
        return blob_name in self.blobs

    def latest_backup(self, database_name, kind=None, container_name=None):
        names = sorted(b for b in self.blobs if b.startswith(f"{database_name}_FULL_"))
        return names[-1] if names else None


class FakeMigrationClient:
    """Scripted migration service: poll() replays observations in order."""

    def __init__(self):
        self.submitted = []
        self.credential_valid_at_submit: list[bool] = []
        self.observations: list[Optional[MigrationObservation]] = []
        self.poll_count = 0
        self.cutover_calls: list[MigrationHandle] = []
        self.cutover_error: Optional[Exception] = None
        self.services_ensured: list[str] = []

    def ensure_migration_service(self, resource_group, service_name, location):
        self.services_ensured.append(service_name)
        return f"/subscriptions/sub/resourceGroups/{resource_group}/providers/Microsoft.DataMigration/sqlMigrationServices/{service_name}"

    def submit(self, descriptor):
        self.submitted.append(descriptor)
        self.credential_valid_at_submit.append(descriptor.source_connection.credential.is_valid)
        target = descriptor.target
        return MigrationHandle(
            resource_group=target.resource_group,
            managed_instance_name=target.managed_instance_name,
            target_database_name=target.target_database_name,
            migration_operation_id="op-1",
        )

    def poll(self, handle):
        self.poll_count += 1
        if not self.observations:
            raise AssertionError("poll() called more often than scripted")
        return self.observations.pop(0)

    def cutover(self, handle):
        if self.cutover_error is not None:
            raise self.cutover_error
        self.cutover_calls.append(handle)


def observation(provisioning_state=None, migration_status=None) -> MigrationObservation:
    return MigrationObservation(
        provisioning_state=provisioning_state,
        migration_status=migration_status,
        migration_operation_id="op-1",
    )


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def migration_client():
    return FakeMigrationClient()


@pytest.fixture
def obs():
    """Factory for migration observations."""
    return observation


@pytest.fixture
def container_url():
    return CONTAINER_URL


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def connection():
    return SourceConnection(
        host="sql01",
        username="migrator",
        database_name="Sales",
        credential=SourceCredential("S3cret!"),
    )


@pytest.fixture
def handle():
    return MigrationHandle(
        resource_group="rg-migration",
        managed_instance_name="mi01",
        target_database_name="Sales",
        migration_operation_id="op-1",
    )


@pytest.fixture
def make_settings():
    """Factory fixture: complete settings with overrides."""
    def _make(**overrides) -> Settings:
        values = {
            "subscription_id": "sub",
            "resource_group": "rg-migration",
            "managed_instance_name": "mi01",
            "location": "westeurope",
            "storage_account_name": "migbackups",
            "source_server": "sql01",
            "source_username": "migrator",
            "source_password": "S3cret!",
            "source_database": "Sales",
            "poll_interval_seconds": 0,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make
