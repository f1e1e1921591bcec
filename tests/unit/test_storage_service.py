"""
StorageService against mocked Azure clients.
"""

import base64
from unittest.mock import MagicMock

import pytest
from azure.core.exceptions import ResourceExistsError

from sqlmi_migrate.exceptions import StorageError
from sqlmi_migrate.services import StorageService

CONTAINER_URL = "https://migbackups.blob.core.windows.net/migration-backups"


@pytest.fixture
def clients(make_settings):
    clients = MagicMock()
    clients.settings = make_settings()
    clients.blob_service_client.account_name = "migbackups"
    clients.blob_service_client.credential.account_key = base64.b64encode(b"not-a-real-key").decode()
    clients.get_blob_container_client.return_value.url = CONTAINER_URL
    return clients


@pytest.fixture
def service(clients):
    return StorageService(clients)


class TestContainer:
    def test_existing_container_is_fine(self, service, clients):
        clients.get_blob_container_client.return_value.create_container.side_effect = ResourceExistsError("exists")
        assert service.ensure_container() == CONTAINER_URL


class TestAccessToken:
    def test_token_is_signed_for_container(self, service):
        token = service.generate_access_token(expiry_hours=24)

        assert "sig=" in token.value
        assert not token.value.startswith("?")
        assert token.container_url == CONTAINER_URL
        assert token.value not in repr(token)

    def test_missing_account_key(self, service, clients):
        clients.blob_service_client.credential = None
        with pytest.raises(StorageError):
            service.generate_access_token()


class TestBlobs:
    def test_blob_exists(self, service, clients):
        blob_client = clients.get_blob_container_client.return_value.get_blob_client.return_value
        blob_client.exists.return_value = False

        assert service.blob_exists("Sales_FULL_20240115_120000.bak") is False
        clients.get_blob_container_client.return_value.get_blob_client.assert_called_with(
            "Sales_FULL_20240115_120000.bak"
        )

    def test_latest_backup_picks_newest_full_backup(self, service, clients):
        names = [
            "Sales_FULL_20240114_120000.bak",
            "Sales_FULL_20240115_120000.bak",
            "Sales_LOG_20240115_130000.trn",
            "Other_FULL_20240116_120000.bak",
        ]
        blobs = []
        for name in names:
            blob = MagicMock(size=1, last_modified=None)
            blob.name = name
            blobs.append(blob)
        clients.get_blob_container_client.return_value.list_blobs.return_value = blobs

        assert service.latest_backup("Sales") == "Sales_FULL_20240115_120000.bak"

    def test_latest_backup_lists_by_prefix_without_a_cap(self, service, clients):
        blobs = []
        for minute in range(60):
            for second in range(30):
                blob = MagicMock(size=1, last_modified=None)
                blob.name = f"Sales_FULL_20240115_12{minute:02d}{second:02d}.bak"
                blobs.append(blob)
        container = clients.get_blob_container_client.return_value
        container.list_blobs.return_value = blobs

        assert service.latest_backup("Sales") == "Sales_FULL_20240115_125929.bak"
        container.list_blobs.assert_called_once_with(name_starts_with="Sales_FULL_")
