"""
Source server connection and the scoped secret that authenticates it.
"""

from dataclasses import dataclass
from typing import Optional

from ..exceptions import CredentialInvalidatedError


class SourceCredential:
    """
    Write-only handle around the source server password.

    The value is only reachable through reveal(), is masked in repr and
    str, cannot be copied or pickled, and is dropped by invalidate().
    Used as a context manager the handle is invalidated on every exit
    path, including exceptions.
    """

    __slots__ = ("_value",)

    def __init__(self, value: str):
        if not value:
            raise ValueError("Source credential cannot be empty")
        self._value: Optional[str] = value

    def reveal(self) -> str:
        """Return the secret for the call that consumes it."""
        if self._value is None:
            raise CredentialInvalidatedError(
                "Source credential has already been invalidated"
            )
        return self._value

    def invalidate(self) -> None:
        """Drop the secret. Safe to call more than once."""
        self._value = None

    @property
    def is_valid(self) -> bool:
        return self._value is not None

    def __enter__(self) -> "SourceCredential":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.invalidate()

    def __repr__(self) -> str:
        state = "**********" if self.is_valid else "invalidated"
        return f"SourceCredential('{state}')"

    __str__ = __repr__

    def __copy__(self):
        raise TypeError("SourceCredential cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("SourceCredential cannot be copied")

    def __reduce__(self):
        raise TypeError("SourceCredential cannot be serialized")


@dataclass(frozen=True)
class SourceConnection:
    """Connection details for the source SQL Server."""

    host: str
    username: str
    database_name: str
    credential: SourceCredential
    port: int = 1433

    @property
    def server(self) -> str:
        """Server argument in sqlcmd form (host,port)."""
        return f"{self.host},{self.port}"
