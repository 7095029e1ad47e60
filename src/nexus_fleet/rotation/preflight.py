"""Cycle preflight checks.

Run once before a rotation cycle touches any slot. The first failing check
aborts the cycle with a :class:`ResourceError` or :class:`ConfigError`:

1. available host memory >= ``min_free_memory_mb``
2. container runtime answers ``docker info``
3. disk usage of ``disk_path`` <= ``max_disk_usage_percent``
4. identity pool file parses

Host probes default to ``psutil`` and can be replaced for tests.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import psutil

from nexus_fleet.core.errors import ResourceError
from nexus_fleet.core.logging import get_logger
from nexus_fleet.core.settings import FleetSettings
from nexus_fleet.rotation.pool import IdentityPoolStore

logger = get_logger(__name__)

_MB = 1024 * 1024


def available_memory_mb() -> int:
    return int(psutil.virtual_memory().available // _MB)


def disk_usage_percent(path: Path) -> float:
    return float(psutil.disk_usage(str(path)).percent)


@dataclass(frozen=True)
class PreflightReport:
    """Host readings taken by a successful preflight."""

    free_memory_mb: int
    disk_usage_percent: float
    pool: dict[str, list[str]]


class Preflight:
    """Checks that the host can safely run a rotation cycle."""

    def __init__(
        self,
        settings: FleetSettings,
        runtime_ping: Callable[[], bool],
        pool_store: IdentityPoolStore,
        *,
        memory_probe: Callable[[], int] | None = None,
        disk_probe: Callable[[Path], float] | None = None,
    ) -> None:
        self.settings = settings
        self._runtime_ping = runtime_ping
        self.pool_store = pool_store
        self._memory_probe = memory_probe or available_memory_mb
        self._disk_probe = disk_probe or disk_usage_percent

    def run(self) -> PreflightReport:
        """Run every check in order.

        Raises:
            ResourceError: Memory, runtime or disk check failed.
            ConfigError: The identity pool is missing or corrupt.
        """
        free_mb = self._memory_probe()
        if free_mb < self.settings.min_free_memory_mb:
            raise ResourceError(
                f"Insufficient memory: {free_mb}MB available "
                f"(at least {self.settings.min_free_memory_mb}MB required)"
            ).with_context(free_memory_mb=free_mb)

        if not self._runtime_ping():
            raise ResourceError("Container runtime is not responding")

        usage = self._disk_probe(self.settings.disk_path)
        if usage > self.settings.max_disk_usage_percent:
            raise ResourceError(
                f"Disk usage too high: {usage:.0f}% of {self.settings.disk_path} "
                f"(limit {self.settings.max_disk_usage_percent:.0f}%)"
            ).with_context(disk_usage_percent=usage)

        pool = self.pool_store.load()

        logger.info("preflight.passed", free_memory_mb=free_mb, disk_usage_percent=usage, slots=len(pool))
        return PreflightReport(free_memory_mb=free_mb, disk_usage_percent=usage, pool=pool)
