"""
Backup artifact models and blob naming.

Artifact names have the form {database}_{KIND}_{yyyyMMdd_HHmmss}.{ext}.
The fixed-width timestamp keeps lexical and chronological order the same.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_ARTIFACT_PATTERN = re.compile(
    r"^(?P<database>.+)_(?P<kind>FULL|LOG)_(?P<stamp>\d{8}_\d{6})\.(?P<ext>bak|trn)$"
)


class BackupKind(str, Enum):
    """Kind of SQL Server backup."""

    FULL = "FULL"
    LOG = "LOG"

    @property
    def extension(self) -> str:
        """File extension used for this kind of backup."""
        return "bak" if self == BackupKind.FULL else "trn"


def safe_database_token(database_name: str) -> str:
    """Reduce a database name to characters safe in blob names and SQL literals."""
    token = _UNSAFE_CHARS.sub("_", database_name.strip())
    return token or "database"


def artifact_blob_name(database_name: str, kind: BackupKind, now: datetime) -> str:
    """
    Build the blob name for a backup artifact.

    Args:
        database_name: Source database name
        kind: Full or log backup
        now: Creation time, truncated to the second

    Returns:
        Blob name such as "Sales_FULL_20240115_120000.bak"
    """
    return (
        f"{safe_database_token(database_name)}_{kind.value}_"
        f"{now.strftime(TIMESTAMP_FORMAT)}.{kind.extension}"
    )


def parse_artifact_timestamp(blob_name: str) -> datetime:
    """
    Recover the creation time encoded in an artifact blob name.

    Raises:
        ValueError: If the name was not produced by artifact_blob_name
    """
    match = _ARTIFACT_PATTERN.match(blob_name)
    if not match:
        raise ValueError(f"Not a backup artifact name: {blob_name}")
    return datetime.strptime(match.group("stamp"), TIMESTAMP_FORMAT)


def is_artifact_of(blob_name: str, database_name: str, kind: BackupKind) -> bool:
    """Check whether a blob is an artifact of the given database and kind."""
    match = _ARTIFACT_PATTERN.match(blob_name)
    return bool(
        match
        and match.group("database") == safe_database_token(database_name)
        and match.group("kind") == kind.value
    )


@dataclass(frozen=True)
class BackupArtifact:
    """A backup written to the migration container."""

    kind: BackupKind
    database_name: str
    created_at: datetime
    blob_name: str
    blob_url: str = ""

    @classmethod
    def create(
        cls,
        kind: BackupKind,
        database_name: str,
        created_at: datetime,
        container_url: str = "",
    ) -> "BackupArtifact":
        """Name a new artifact and resolve its URL inside the container."""
        created_at = created_at.replace(microsecond=0)
        blob_name = artifact_blob_name(database_name, kind, created_at)
        blob_url = f"{container_url.rstrip('/')}/{blob_name}" if container_url else ""
        return cls(
            kind=kind,
            database_name=database_name,
            created_at=created_at,
            blob_name=blob_name,
            blob_url=blob_url,
        )


@dataclass(frozen=True)
class StorageAccessToken:
    """Time-limited SAS token for a blob container."""

    value: str
    expiry: datetime
    container_url: str

    def __repr__(self) -> str:
        return (
            f"StorageAccessToken(container_url={self.container_url!r}, "
            f"expiry={self.expiry.isoformat()})"
        )

    @property
    def bare_token(self) -> str:
        """Token without a leading '?', as the SQL credential expects it."""
        return self.value.lstrip("?")
