"""Identity rotation: pool and state stores, run lock, engine, monitor, cron."""

from nexus_fleet.rotation.engine import RotationEngine, next_index
from nexus_fleet.rotation.lock import RunLock
from nexus_fleet.rotation.monitor import MonitorReport, RotationMonitor
from nexus_fleet.rotation.oplog import OperationalLog
from nexus_fleet.rotation.pool import IdentityPoolStore, real_identities
from nexus_fleet.rotation.preflight import Preflight, PreflightReport
from nexus_fleet.rotation.results import CycleResult, OverallStatus, SlotOutcome, SlotState
from nexus_fleet.rotation.schedule import CronInstaller, cron_entries
from nexus_fleet.rotation.state import RotationStateStore

__all__ = [
    "CronInstaller",
    "CycleResult",
    "IdentityPoolStore",
    "MonitorReport",
    "OperationalLog",
    "OverallStatus",
    "Preflight",
    "PreflightReport",
    "RotationEngine",
    "RotationMonitor",
    "RotationStateStore",
    "RunLock",
    "SlotOutcome",
    "SlotState",
    "cron_entries",
    "next_index",
    "real_identities",
]
