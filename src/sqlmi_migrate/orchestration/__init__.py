"""Migration lifecycle control: launch, monitor, cutover and the orchestrator."""

from .cutover import CutoverGate
from .launcher import MigrationLauncher
from .monitor import MigrationMonitor, MonitorOutcome
from .orchestrator import MigrationOrchestrator, OfflinePlan, OnlinePlan, plan_for

__all__ = [
    "CutoverGate",
    "MigrationLauncher",
    "MigrationMonitor",
    "MonitorOutcome",
    "MigrationOrchestrator",
    "OfflinePlan",
    "OnlinePlan",
    "plan_for",
]
