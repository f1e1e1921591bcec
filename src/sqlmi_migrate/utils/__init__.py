"""Utility functions for SQL MI migration runs."""

from .tool_paths import get_tool_path
from .validators import (
    quote_identifier,
    quote_literal,
    validate_container_name,
    validate_database_name,
)

__all__ = [
    "get_tool_path",
    "quote_identifier",
    "quote_literal",
    "validate_container_name",
    "validate_database_name",
]
