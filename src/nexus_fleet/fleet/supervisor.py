"""Worker supervisor: one execution unit per slot.

Wraps the container runtime with slot semantics. Every runtime failure is
translated into a slot-scoped error so callers (the rotation engine and the
manual fleet operations) can decide whether to skip the slot or report it.

Key Concepts:
    destroy(slot): Idempotent removal. A slot with no unit is already
        destroyed.
    create(slot, identity, profile): Prepare the log file, start a detached
        unit bound to the identity.
    health_check(slot, timeout): Poll until running, then confirm the unit
        is still running after a short delay.
    replace(slot, identity, profile): destroy, create, health check; a
        unit that fails its health check is captured for diagnostics and
        removed.

Tags:
    supervisor, container, health-check, slot
"""

from __future__ import annotations

import shutil
import time
from collections.abc import Callable
from pathlib import Path

from nexus_fleet.core.errors import (
    FleetError,
    SlotCreateError,
    SlotDestroyError,
    SlotHealthError,
)
from nexus_fleet.core.logging import get_logger
from nexus_fleet.core.resources import MemoryLimit, ResourceProfile
from nexus_fleet.core.settings import FleetSettings
from nexus_fleet.fleet.slots import display_label, log_path, mask_identity
from nexus_fleet.runtime.docker import DockerRuntime
from nexus_fleet.runtime.units import Mount, UnitSpec

logger = get_logger(__name__)

MANAGED_LABEL = "io.nexus.fleet.slot"

_TERMINAL_STATES = frozenset({"exited", "dead", "not_found", "removing"})


class WorkerSupervisor:
    """Creates, destroys and health-checks slot units.

    ``sleep`` and ``clock`` are injectable so health polling can be driven
    without real waiting.
    """

    def __init__(
        self,
        runtime: DockerRuntime,
        settings: FleetSettings,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.runtime = runtime
        self.settings = settings
        self._sleep = sleep
        self._clock = clock

    # ------------------------------------------------------------------
    # Slot-derived values
    # ------------------------------------------------------------------

    def log_path_for(self, slot: str) -> Path:
        return log_path(self.settings.log_dir, slot)

    def label_for(self, slot: str) -> str:
        return display_label(slot, self.settings.slot_prefix)

    def prepare_log_file(self, path: Path) -> None:
        """Make *path* a writable regular file.

        A directory at the log path (left behind by a bind mount of a file
        that did not exist yet) is removed first.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.is_dir():
            shutil.rmtree(path)
        path.touch(exist_ok=True)
        path.chmod(0o644)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def destroy(self, slot: str) -> bool:
        """Remove the slot's unit. Returns whether a unit existed.

        Raises:
            SlotDestroyError: The runtime failed to remove an existing unit.
        """
        try:
            existed = self.runtime.remove(slot)
        except FleetError as exc:
            raise SlotDestroyError(slot, f"Failed to remove unit: {exc.message}", cause=exc) from exc
        logger.info("slot.destroyed", slot=slot, existed=existed)
        return existed

    def create(
        self,
        slot: str,
        identity: str,
        profile: ResourceProfile,
        log_file: Path | None = None,
    ) -> str:
        """Start a unit for *slot* bound to *identity*. Returns the container id.

        Raises:
            SlotCreateError: The log file could not be prepared or the runtime
                rejected the unit. ``diagnostics`` holds the runtime stderr.
        """
        log_file = log_file or self.log_path_for(slot)
        try:
            self.prepare_log_file(log_file)
        except OSError as exc:
            raise SlotCreateError(slot, f"Cannot prepare log file {log_file}: {exc}", cause=exc) from exc

        log_dir = str(log_file.parent)
        spec = UnitSpec(
            name=slot,
            image=self.settings.image_name,
            profile=profile,
            env={
                "NODE_ID": identity,
                "NEXUS_LOG": str(log_file),
                "SCREEN_NAME": self.label_for(slot),
            },
            mounts=(Mount(str(log_file), str(log_file)), Mount(log_dir, log_dir)),
            labels={MANAGED_LABEL: slot},
        )
        try:
            container_id = self.runtime.run_unit(spec)
        except FleetError as exc:
            stderr = getattr(exc, "stderr", "") or exc.message
            raise SlotCreateError(
                slot,
                f"Runtime rejected unit: {stderr.strip()}",
                diagnostics=stderr,
                cause=exc,
            ) from exc

        logger.info(
            "slot.created",
            slot=slot,
            identity=mask_identity(identity),
            memory=str(profile),
            container_id=container_id,
        )
        return container_id

    def health_check(self, slot: str, timeout: float | None = None) -> bool:
        """Wait for the unit to be running and still running after a confirm delay."""
        timeout = self.settings.health_timeout_seconds if timeout is None else timeout
        deadline = self._clock() + timeout

        while True:
            status = self._status(slot)
            if status == "running":
                break
            if status in _TERMINAL_STATES:
                logger.warning("slot.health.terminal", slot=slot, status=status)
                return False
            if self._clock() >= deadline:
                logger.warning("slot.health.timeout", slot=slot, status=status, timeout=timeout)
                return False
            self._sleep(self.settings.health_poll_seconds)

        self._sleep(self.settings.health_confirm_seconds)
        status = self._status(slot)
        if status != "running":
            logger.warning("slot.health.not_confirmed", slot=slot, status=status)
            return False
        return True

    def replace(self, slot: str, identity: str, profile: ResourceProfile) -> str:
        """Destroy, recreate and health-check one slot.

        Raises:
            SlotDestroyError, SlotCreateError: Propagated from the steps.
            SlotHealthError: The new unit did not stay running; it has been
                removed and ``diagnostics`` holds its last log lines.
        """
        self.destroy(slot)
        self._sleep(self.settings.settle_seconds)
        container_id = self.create(slot, identity, profile)
        if not self.health_check(slot):
            raise self.fail_health(slot)
        return container_id

    def fail_health(self, slot: str) -> SlotHealthError:
        """Capture diagnostics, remove the unhealthy unit, return the error to raise."""
        diagnostics = self.diagnostics(slot)
        try:
            self.destroy(slot)
        except SlotDestroyError as exc:
            logger.warning("slot.cleanup_failed", slot=slot, error=exc.message)
        return SlotHealthError(slot, "Unit did not stay running", diagnostics=diagnostics)

    # ------------------------------------------------------------------
    # Live state
    # ------------------------------------------------------------------

    def current_identity(self, slot: str) -> str | None:
        """``NODE_ID`` from the live unit's environment, or None."""
        document = self.runtime.inspect(slot)
        if document is None:
            return None
        for entry in document.get("Config", {}).get("Env") or []:
            key, _, value = entry.partition("=")
            if key == "NODE_ID":
                return value or None
        return None

    def resource_limit_of(self, slot: str) -> MemoryLimit:
        """Memory ceiling of the live unit; the fallback ceiling if none is set."""
        document = self.runtime.inspect(slot)
        raw = (document or {}).get("HostConfig", {}).get("Memory")
        limit = MemoryLimit.from_runtime(raw)
        if limit.is_unlimited:
            return self.settings.fallback_limit
        return limit

    def diagnostics(self, slot: str, lines: int = 20) -> str:
        try:
            return self.runtime.logs(slot, tail=lines)
        except FleetError as exc:
            return f"<logs unavailable: {exc.message}>"

    def _status(self, slot: str) -> str:
        try:
            return self.runtime.status(slot)
        except FleetError as exc:
            logger.warning("slot.status_failed", slot=slot, error=exc.message)
            return "unknown"
