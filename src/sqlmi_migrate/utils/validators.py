"""
Validation and quoting utilities for T-SQL statements.

Values that end up inside statements sent to the source server go
through these helpers.
"""

import re
from typing import Optional

SYSTEM_DATABASES = ("master", "tempdb", "model", "msdb")


def validate_database_name(name: str) -> tuple[bool, Optional[str]]:
    """
    Validate a database name to migrate.

    Args:
        name: Database name to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not name or not name.strip():
        return False, "Database name cannot be empty"

    name = name.strip()

    # Length check
    if len(name) > 128:
        return False, "Database name cannot exceed 128 characters"

    # Control characters never appear in valid sysname values
    if any(ord(ch) < 32 for ch in name):
        return False, "Database name cannot contain control characters"

    if name.lower() in SYSTEM_DATABASES:
        return False, f"'{name}' is a system database and cannot be migrated"

    return True, None


def validate_container_name(name: str) -> tuple[bool, Optional[str]]:
    """
    Validate an Azure blob container name.

    Args:
        name: Container name to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not name:
        return False, "Container name cannot be empty"

    if not 3 <= len(name) <= 63:
        return False, "Container name must be between 3 and 63 characters"

    if not re.match(r"^[a-z0-9](?!.*--)[a-z0-9-]*[a-z0-9]$", name):
        return False, (
            "Container name must use lowercase letters, numbers and single "
            "hyphens, and start and end with a letter or number"
        )

    return True, None


def quote_identifier(name: str) -> str:
    """Bracket-quote a T-SQL identifier."""
    return "[" + name.replace("]", "]]") + "]"


def quote_literal(value: str) -> str:
    """Quote a value as a T-SQL unicode string literal."""
    return "N'" + value.replace("'", "''") + "'"
