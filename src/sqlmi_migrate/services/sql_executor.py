"""
Statement execution against the source SQL Server.

The controller only needs to run a statement and, for existence checks,
read back a single value. SqlCmdExecutor does this with the sqlcmd client.
"""

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from typing import Optional

from ..exceptions import StatementExecutionError
from ..models import SourceConnection
from ..utils.tool_paths import get_tool_path

logger = logging.getLogger(__name__)


class BaseStatementExecutor(ABC):
    """Interface for running T-SQL against the source server."""

    @abstractmethod
    def execute(
        self,
        connection: SourceConnection,
        statement: str,
        timeout_seconds: Optional[int] = 60,
    ) -> str:
        """
        Execute a statement.

        Args:
            connection: Source connection (its credential must still be valid)
            statement: T-SQL batch to run
            timeout_seconds: Query timeout, None for no timeout

        Returns:
            Text output of the batch

        Raises:
            StatementExecutionError: If the statement fails
        """
        pass

    def query_scalar(
        self,
        connection: SourceConnection,
        query: str,
        timeout_seconds: Optional[int] = 60,
    ) -> Optional[str]:
        """Run a query and return the first non-empty output line."""
        output = self.execute(
            connection, f"SET NOCOUNT ON; {query}", timeout_seconds
        )
        for line in output.splitlines():
            if line.strip():
                return line.strip()
        return None


class SqlCmdExecutor(BaseStatementExecutor):
    """
    Runs statements with sqlcmd.

    The password is handed over through SQLCMDPASSWORD so it never
    appears on the command line.
    """

    def __init__(self, login_timeout_seconds: int = 30):
        self._login_timeout = login_timeout_seconds

    def execute(
        self,
        connection: SourceConnection,
        statement: str,
        timeout_seconds: Optional[int] = 60,
    ) -> str:
        cmd = [
            get_tool_path("sqlcmd"),
            "-S", connection.server,
            "-U", connection.username,
            "-d", "master",
            "-Q", statement,
            "-b",  # Non-zero exit code on error
            "-C",  # Trust server certificate
            "-h", "-1",  # No headers
            "-W",  # Trim trailing spaces
            "-l", str(self._login_timeout),
            "-t", str(timeout_seconds or 0),
        ]

        env = os.environ.copy()
        env["SQLCMDPASSWORD"] = connection.credential.reveal()

        # Process timeout leaves room for login; None means wait indefinitely
        process_timeout = None
        if timeout_seconds:
            process_timeout = timeout_seconds + self._login_timeout

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                timeout=process_timeout,
                env=env,
            )
        except subprocess.TimeoutExpired:
            logger.error(f"sqlcmd timed out after {process_timeout} seconds")
            raise StatementExecutionError(
                connection.host, f"Statement timed out after {process_timeout} seconds"
            )
        except FileNotFoundError:
            raise StatementExecutionError(
                connection.host,
                "sqlcmd not found. SQL Server client tools are not installed.",
            )
        finally:
            env.pop("SQLCMDPASSWORD", None)

        stdout = result.stdout.decode("utf-8", errors="replace")
        stderr = result.stderr.decode("utf-8", errors="replace")

        if result.returncode != 0:
            error_msg = self._clean_error(stderr or stdout)
            logger.error(f"sqlcmd failed on {connection.host}: {error_msg}")
            raise StatementExecutionError(
                connection.host, error_msg, details=(stderr or stdout).strip()
            )

        return stdout

    def _clean_error(self, error: str) -> str:
        """Clean up SQL Server error message."""
        if "Login failed" in error:
            return "Login failed - check username and password"
        if "network-related" in error.lower() or "instance-specific" in error.lower():
            return "Network error - check host and port"
        return error.strip()[:500] or "Statement failed"
