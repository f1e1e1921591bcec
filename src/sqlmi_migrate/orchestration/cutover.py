"""
Cutover gate for online migrations.
"""

import logging

from ..models import MigrationHandle
from ..services import MigrationServiceClient

logger = logging.getLogger(__name__)


class CutoverGate:
    """Completes an online migration only when explicitly confirmed."""

    def __init__(self, migration_client: MigrationServiceClient):
        self._migration = migration_client

    def request_cutover(self, handle: MigrationHandle, confirmed: bool) -> bool:
        """
        Cut over if confirmed.

        Returns:
            True if the cutover call was made

        Raises:
            CutoverError: The cutover call failed (not retried)
        """
        if not confirmed:
            logger.warning(
                f"Cutover for {handle} not confirmed. The migration keeps "
                f"shipping logs; run again with cutover to complete it."
            )
            return False

        self._migration.cutover(handle)
        logger.info(f"Cutover requested for {handle}")
        return True
