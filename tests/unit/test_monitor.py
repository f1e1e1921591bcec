"""
Migration monitor termination predicates, resilience and cancellation.
"""

import threading

import pytest

from sqlmi_migrate.exceptions import MonitorCancelledError, MonitorTimeoutError
from sqlmi_migrate.models import MigrationMode, OFFLINE_ONGOING_STATES, ONLINE_ONGOING_STATUSES
from sqlmi_migrate.orchestration import MigrationMonitor


@pytest.fixture
def monitor(migration_client):
    return MigrationMonitor(migration_client, interval_seconds=0)


class TestOfflinePredicate:
    def test_stops_at_first_state_outside_ongoing_set(self, monitor, migration_client, handle, obs):
        migration_client.observations = [
            obs("Accepted", "InProgress"),
            obs("InProgress", "InProgress"),
            obs("InProgress", "FullBackupRestoreInProgress"),
            obs("Succeeded", "Succeeded"),
            obs("Succeeded", "Succeeded"),
        ]

        outcome = monitor.wait(handle, MigrationMode.OFFLINE)

        assert outcome.terminal
        assert outcome.polls == 4
        assert outcome.observation.provisioning_state == "Succeeded"
        assert len(migration_client.observations) == 1

    @pytest.mark.parametrize("state", ["Succeeded", "Failed", "Canceled", "Updating"])
    def test_any_other_state_is_terminal(self, monitor, migration_client, handle, obs, state):
        migration_client.observations = [obs(state, "InProgress")]
        outcome = monitor.wait(handle, MigrationMode.OFFLINE)
        assert outcome.polls == 1

    def test_ignores_migration_status(self, monitor, migration_client, handle, obs):
        migration_client.observations = [
            obs("InProgress", "Failed"),
            obs("Failed", "Failed"),
        ]
        outcome = monitor.wait(handle, MigrationMode.OFFLINE)
        assert outcome.polls == 2


class TestOnlinePredicate:
    def test_stops_at_first_status_outside_ongoing_set(self, monitor, migration_client, handle, obs):
        migration_client.observations = [
            obs("Succeeded", "InProgress"),
            obs("Succeeded", "FullBackupUploadCompleted"),
            obs("Succeeded", "FullBackupRestoreInProgress"),
            obs("Succeeded", "LogShippingInProgress"),
            obs("Succeeded", "Succeeded"),
        ]

        outcome = monitor.wait(handle, MigrationMode.ONLINE)

        assert outcome.polls == 5
        assert outcome.observation.migration_status == "Succeeded"

    def test_ongoing_sets_match_documented_values(self):
        assert OFFLINE_ONGOING_STATES == {"InProgress", "Accepted"}
        assert ONLINE_ONGOING_STATUSES == {
            "InProgress", "FullBackupUploadCompleted",
            "FullBackupRestoreInProgress", "LogShippingInProgress",
        }


class TestResilience:
    def test_absent_observation_does_not_terminate(self, monitor, migration_client, handle, obs):
        migration_client.observations = [None, obs("Failed", "Failed")]

        outcome = monitor.wait(handle, MigrationMode.OFFLINE)

        assert outcome.polls == 2
        assert outcome.observation.provisioning_state == "Failed"
        assert len(outcome.history) == 1

    def test_stop_when_ends_wait_while_ongoing(self, monitor, migration_client, handle, obs):
        migration_client.observations = [
            obs("Succeeded", "InProgress"),
            obs("Succeeded", "LogShippingInProgress"),
        ]

        outcome = monitor.wait(
            handle, MigrationMode.ONLINE, stop_when=lambda o: o.is_ready_for_cutover
        )

        assert not outcome.terminal
        assert outcome.polls == 2


class TestCancellationAndTimeout:
    def test_cancel_token_set_before_start(self, monitor, migration_client, handle):
        token = threading.Event()
        token.set()

        with pytest.raises(MonitorCancelledError):
            monitor.wait(handle, MigrationMode.OFFLINE, cancel_token=token)
        assert migration_client.poll_count == 0

    def test_cancel_between_polls(self, migration_client, handle, obs):
        token = threading.Event()
        migration_client.observations = [obs("InProgress"), obs("InProgress")]
        original_poll = migration_client.poll

        def poll_then_cancel(h):
            result = original_poll(h)
            token.set()
            return result

        migration_client.poll = poll_then_cancel
        monitor = MigrationMonitor(migration_client, interval_seconds=0)

        with pytest.raises(MonitorCancelledError):
            monitor.wait(handle, MigrationMode.OFFLINE, cancel_token=token)
        assert migration_client.poll_count == 1

    def test_max_duration(self, migration_client, handle, obs):
        ticks = iter([0.0, 5.0, 10.0, 15.0])
        migration_client.observations = [obs("InProgress")] * 3
        monitor = MigrationMonitor(
            migration_client, interval_seconds=0, max_duration_seconds=10, clock=lambda: next(ticks)
        )

        with pytest.raises(MonitorTimeoutError):
            monitor.wait(handle, MigrationMode.OFFLINE)
        assert migration_client.poll_count == 2
