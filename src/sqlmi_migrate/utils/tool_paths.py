"""
Command-line tool resolver.

sqlcmd is looked up in this order:
1. SQLMIG_TOOLS_PATH, a directory holding the tool binaries
2. tools/bin in the working directory
3. the system PATH
"""

import logging
import os
import shutil
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)

TOOLS_PATH_ENV = "SQLMIG_TOOLS_PATH"


def _candidate_dirs() -> list[str]:
    dirs = []
    override = os.environ.get(TOOLS_PATH_ENV)
    if override:
        dirs.append(override)
    dirs.append(os.path.join(os.getcwd(), "tools", "bin"))
    return dirs


def _executable_in(directory: str, tool_name: str) -> Optional[str]:
    candidate = os.path.abspath(os.path.join(directory, tool_name))
    if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
        return candidate
    return None


@lru_cache(maxsize=None)
def get_tool_path(tool_name: str) -> str:
    """
    Resolve the executable for a command-line tool.

    Args:
        tool_name: Name of the tool (e.g., "sqlcmd")

    Returns:
        Absolute path when found, otherwise the bare name so the
        subprocess call reports the missing tool itself.
    """
    for directory in _candidate_dirs():
        found = _executable_in(directory, tool_name)
        if found:
            logger.debug(f"Using {tool_name} from {found}")
            return found

    on_path = shutil.which(tool_name)
    if on_path:
        return on_path

    logger.warning(f"{tool_name} not found in {TOOLS_PATH_ENV}, tools/bin or PATH")
    return tool_name
