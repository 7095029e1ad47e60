"""Run lock for rotation cycles.

Scheduled and manual rotation runs must not overlap. The lock is a
non-blocking exclusive ``flock`` on a file next to the state file; the
kernel releases it if the holding process dies, so there is no stale-lock
cleanup.
"""

from __future__ import annotations

import fcntl
import os
from pathlib import Path
from typing import IO

from nexus_fleet.core.errors import RotationLockedError
from nexus_fleet.core.logging import get_logger

logger = get_logger(__name__)


class RunLock:
    """Exclusive process lock.

    Example::

        with RunLock(settings.lock_path):
            engine.run_cycle()
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._handle: IO[str] | None = None

    @property
    def held(self) -> bool:
        return self._handle is not None

    def acquire(self) -> None:
        """Take the lock or raise :class:`RotationLockedError` immediately."""
        if self._handle is not None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle = self.path.open("a+", encoding="utf-8")
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as exc:
            handle.close()
            raise RotationLockedError(
                "Another rotation run holds the lock", cause=exc
            ).with_context(path=str(self.path)) from exc

        handle.seek(0)
        handle.truncate()
        handle.write(f"{os.getpid()}\n")
        handle.flush()
        self._handle = handle
        logger.debug("lock.acquired", path=str(self.path))

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None
        logger.debug("lock.released", path=str(self.path))

    def __enter__(self) -> RunLock:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
