"""Operational log files.

Two append-only plain-text files in the log directory, read by operators and
by the rotation monitor:

- ``nexus-rotate.log``: every line of every rotation cycle.
- ``rotation-failure.log``: failures only.

Each line is ``[YYYY-MM-DD HH:MM:SS] message``. These are separate from the
structured application log emitted through structlog.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from nexus_fleet.core.logging import get_logger

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_line(message: str, now: datetime) -> str:
    return f"[{now.strftime(TIMESTAMP_FORMAT)}] {message}\n"


class OperationalLog:
    """Writer for the rotation and failure logs."""

    def __init__(
        self,
        rotate_log: Path,
        failure_log: Path,
        *,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.rotate_log = rotate_log
        self.failure_log = failure_log
        self._now = now

    def info(self, message: str) -> None:
        self._append(self.rotate_log, message)

    def failure(self, message: str) -> None:
        """Record a failure in both files."""
        self._append(self.rotate_log, f"ERROR: {message}")
        self._append(self.failure_log, message)

    def warning(self, message: str, *, record_failure: bool = False) -> None:
        self._append(self.rotate_log, f"WARNING: {message}")
        if record_failure:
            self._append(self.failure_log, f"WARNING: {message}")

    def _append(self, path: Path, message: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as handle:
                handle.write(format_line(message, self._now()))
        except OSError as exc:
            # The operational log must never take a rotation cycle down.
            logger.error("oplog.write_failed", path=str(path), error=str(exc), message=message)
