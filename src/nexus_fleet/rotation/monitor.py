"""Rotation health monitor.

Inspects the operational logs left by rotation cycles and raises alerts
when rotation looks stalled or broken. Run from cron every 30 minutes
(``nexus-fleet monitor``). Alerts are emitted as warnings and returned so
the caller can forward them.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from nexus_fleet.core.logging import get_logger
from nexus_fleet.rotation.engine import CYCLE_COMPLETE_MARKER
from nexus_fleet.rotation.oplog import OperationalLog

logger = get_logger(__name__)

FAILURE_TAIL = 3


@dataclass
class MonitorReport:
    alerts: list[str] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return not self.alerts


class RotationMonitor:
    """Checks the rotation log and the failure log."""

    def __init__(
        self,
        oplog: OperationalLog,
        max_log_age_seconds: int = 10800,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.oplog = oplog
        self.max_log_age_seconds = max_log_age_seconds
        self._clock = clock

    def check(self) -> MonitorReport:
        report = MonitorReport()
        rotate_log = self.oplog.rotate_log
        failure_log = self.oplog.failure_log

        if not rotate_log.is_file():
            self._alert(report, f"Rotation log does not exist: {rotate_log}")
            return report

        if failure_log.is_file() and failure_log.stat().st_size > 0:
            lines = failure_log.read_text(encoding="utf-8").splitlines()
            recent = "\n".join(lines[-FAILURE_TAIL:])
            self._alert(report, f"Rotation failures recorded:\n{recent}")
            failure_log.write_text("", encoding="utf-8")

        if CYCLE_COMPLETE_MARKER not in rotate_log.read_text(encoding="utf-8"):
            self._alert(report, "No completed rotation cycle found in the rotation log")
            return report

        age = self._clock() - rotate_log.stat().st_mtime
        if age > self.max_log_age_seconds:
            hours = self.max_log_age_seconds / 3600
            self._alert(report, f"Rotation log not updated for more than {hours:g} hours")

        if report.healthy:
            logger.info("monitor.healthy", rotate_log=str(rotate_log))
        return report

    @staticmethod
    def _alert(report: MonitorReport, message: str) -> None:
        report.alerts.append(message)
        logger.warning("monitor.alert", alert=message)
