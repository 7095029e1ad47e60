"""
Shared context for fleet operations.

A :class:`FleetContext` bundles the immutable settings with the runtime
client and the stores built from them. Operation functions take it as their
first argument; tests construct one around a fake runtime.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from nexus_fleet.core.settings import FleetSettings, get_settings
from nexus_fleet.fleet.supervisor import WorkerSupervisor
from nexus_fleet.rotation.engine import RotationEngine
from nexus_fleet.rotation.lock import RunLock
from nexus_fleet.rotation.monitor import RotationMonitor
from nexus_fleet.rotation.oplog import OperationalLog
from nexus_fleet.rotation.pool import IdentityPoolStore
from nexus_fleet.rotation.preflight import Preflight
from nexus_fleet.rotation.state import RotationStateStore
from nexus_fleet.runtime.docker import DockerRuntime


@dataclass
class FleetContext:
    """Context passed to every operation function.

    Attributes:
        settings: Fleet configuration.
        runtime: Container runtime client.
        sleep: Delay function used by the supervisor and the engine.
        caller: Origin of the request (``"cli"``, ``"menu"``, ``"cron"``).
    """

    settings: FleetSettings
    runtime: DockerRuntime
    sleep: Callable[[float], None] = time.sleep
    caller: str = "cli"
    supervisor: WorkerSupervisor = field(init=False)

    def __post_init__(self) -> None:
        self.supervisor = WorkerSupervisor(self.runtime, self.settings, sleep=self.sleep)

    @classmethod
    def from_settings(cls, settings: FleetSettings | None = None, *, caller: str = "cli") -> FleetContext:
        """Build a context around the real docker CLI."""
        settings = settings or get_settings()
        return cls(
            settings=settings,
            runtime=DockerRuntime(timeout=settings.docker_timeout_seconds),
            caller=caller,
        )

    @property
    def pool_store(self) -> IdentityPoolStore:
        return IdentityPoolStore(self.settings.pool_file, self.settings.placeholder)

    @property
    def state_store(self) -> RotationStateStore:
        return RotationStateStore(self.settings.state_file)

    @property
    def oplog(self) -> OperationalLog:
        return OperationalLog(self.settings.rotate_log, self.settings.failure_log)

    def engine(self) -> RotationEngine:
        pool_store = self.pool_store
        return RotationEngine(
            self.settings,
            self.supervisor,
            pool_store,
            self.state_store,
            self.oplog,
            Preflight(self.settings, self.runtime.ping, pool_store),
            lock=RunLock(self.settings.lock_path),
            sleep=self.sleep,
        )

    def monitor(self) -> RotationMonitor:
        return RotationMonitor(self.oplog, self.settings.monitor_max_log_age_seconds)
