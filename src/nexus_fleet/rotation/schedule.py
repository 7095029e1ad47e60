"""Cron installation for scheduled rotation and monitoring.

Entries are tagged with a trailing marker comment. Installing replaces any
previously tagged lines and leaves the rest of the user's crontab alone, so
re-running the install is idempotent.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Callable
from dataclasses import dataclass

from nexus_fleet.core.errors import ErrorContext, RuntimeCommandError
from nexus_fleet.core.logging import get_logger
from nexus_fleet.core.settings import FleetSettings

logger = get_logger(__name__)

CRON_MARKER = "# nexus-fleet"

Runner = Callable[..., subprocess.CompletedProcess[str]]


def fleet_command() -> str:
    return shutil.which("nexus-fleet") or "nexus-fleet"


def cron_entries(settings: FleetSettings, command: str | None = None) -> list[str]:
    """Rotation every N hours, rotation once after boot, monitor every 30 minutes."""
    command = command or fleet_command()
    rotate = f"{command} rotate >> {settings.rotate_output} 2>&1"
    monitor = f"{command} monitor >> {settings.monitor_log} 2>&1"
    return [
        f"0 */{settings.rotation_interval_hours} * * * {rotate} {CRON_MARKER}",
        f"@reboot sleep {settings.boot_delay_seconds} && {rotate} {CRON_MARKER}",
        f"*/30 * * * * {monitor} {CRON_MARKER}",
    ]


def merge_crontab(existing: str, entries: list[str]) -> str:
    """Drop previously installed lines from *existing* and append *entries*."""
    kept = [line for line in existing.splitlines() if CRON_MARKER not in line]
    while kept and not kept[-1].strip():
        kept.pop()
    return "\n".join([*kept, *entries]) + "\n"


@dataclass
class CronInstaller:
    """Reads and writes the invoking user's crontab."""

    run: Runner = subprocess.run

    def read(self) -> str:
        result = self.run(["crontab", "-l"], capture_output=True, text=True)
        if result.returncode != 0:
            if "no crontab" in (result.stderr or "").lower():
                return ""
            raise RuntimeCommandError(
                f"crontab -l failed: {result.stderr.strip()}",
                returncode=result.returncode,
                stderr=result.stderr,
                context=ErrorContext(command="crontab -l"),
            )
        return result.stdout

    def write(self, content: str) -> None:
        result = self.run(["crontab", "-"], input=content, capture_output=True, text=True)
        if result.returncode != 0:
            raise RuntimeCommandError(
                f"crontab install failed: {result.stderr.strip()}",
                returncode=result.returncode,
                stderr=result.stderr,
                context=ErrorContext(command="crontab -"),
            )

    def install(self, entries: list[str]) -> bool:
        """Install *entries*. Returns False when they were already in place."""
        existing = self.read()
        merged = merge_crontab(existing, entries)
        if merged.strip() == existing.strip():
            logger.info("cron.unchanged", entries=len(entries))
            return False
        self.write(merged)
        logger.info("cron.installed", entries=len(entries))
        return True
