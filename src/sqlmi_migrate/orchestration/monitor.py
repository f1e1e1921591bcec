"""
Migration monitor.

Polls the migration service at a fixed interval until the mode's
terminal condition holds. A poll that finds nothing (the resource is not
visible yet) is logged and polling continues.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..exceptions import MonitorCancelledError, MonitorTimeoutError
from ..models import MigrationHandle, MigrationMode, MigrationObservation
from ..services import MigrationServiceClient

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 20


@dataclass
class MonitorOutcome:
    """Result of one wait() call."""

    observation: MigrationObservation
    polls: int
    elapsed_seconds: float
    terminal: bool
    history: list[MigrationObservation] = field(default_factory=list)


class MigrationMonitor:
    """
    Blocking poll loop over MigrationServiceClient.poll().

    Cancellation is checked between polls only; a poll in flight always
    runs to completion.
    """

    def __init__(
        self,
        migration_client: MigrationServiceClient,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_duration_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._migration = migration_client
        self._interval = interval_seconds
        self._max_duration = max_duration_seconds
        self._clock = clock

    def wait(
        self,
        handle: MigrationHandle,
        mode: MigrationMode,
        cancel_token: Optional[threading.Event] = None,
        stop_when: Optional[Callable[[MigrationObservation], bool]] = None,
    ) -> MonitorOutcome:
        """
        Poll until the migration leaves the mode's ongoing set.

        Args:
            handle: Migration to observe
            mode: Selects the terminal condition
            cancel_token: Set by the caller to stop between polls
            stop_when: Extra condition that ends the wait while still ongoing

        Returns:
            MonitorOutcome with the last observation

        Raises:
            MonitorCancelledError: The cancel token was set
            MonitorTimeoutError: max_duration_seconds elapsed
        """
        started = self._clock()
        polls = 0
        history: list[MigrationObservation] = []

        while True:
            if cancel_token is not None and cancel_token.is_set():
                raise MonitorCancelledError(f"Monitoring of {handle} cancelled")

            observation = self._migration.poll(handle)
            polls += 1
            elapsed = self._clock() - started

            if observation is None:
                logger.warning(f"Migration {handle} not visible yet, polling again")
            else:
                history.append(observation)
                logger.info(f"Migration {handle}: {observation.describe()}")

                if not observation.is_ongoing(mode):
                    return MonitorOutcome(observation, polls, elapsed, True, history)
                if stop_when is not None and stop_when(observation):
                    return MonitorOutcome(observation, polls, elapsed, False, history)

            if self._max_duration is not None and elapsed >= self._max_duration:
                raise MonitorTimeoutError(elapsed)

            self._pause(handle, cancel_token)

    def _pause(self, handle: MigrationHandle, cancel_token: Optional[threading.Event]) -> None:
        if cancel_token is None:
            time.sleep(self._interval)
        elif cancel_token.wait(self._interval):
            raise MonitorCancelledError(f"Monitoring of {handle} cancelled")
