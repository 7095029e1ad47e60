"""Identity rotation engine.

One rotation cycle advances every eligible slot to the next identity in its
pool. The cycle is driven from cron and from ``nexus-fleet rotate``.

Cycle:
    1. Take the run lock; a concurrent run aborts this one.
    2. Preflight (memory, runtime, disk, pool file). Any failure aborts the
       cycle before a slot is touched, with one failure-log entry.
    3. Load the rotation state. A corrupt state file aborts the cycle.
    4. For each slot in sorted order, strictly one at a time::

           real identities < 2  -> SKIPPED_INELIGIBLE
           next = (current + 1) % count
           destroy old unit     -> DESTROY_FAILED on error
           settle, create new   -> CREATE_FAILED on error
           health check         -> HEALTH_FAILED (unit removed)
           commit index         -> COMMITTED / COMMIT_FAILED

The index is only written after the new unit is confirmed healthy, so a
failed slot is retried with the same target identity on the next cycle.

Tags:
    rotation, engine, scheduling, identity
"""

from __future__ import annotations

import time
from collections.abc import Callable

from nexus_fleet.core.errors import (
    ConfigError,
    FleetError,
    ResourceError,
    RotationLockedError,
    SlotCreateError,
    SlotDestroyError,
    StateCommitError,
)
from nexus_fleet.core.logging import LogContext, get_logger
from nexus_fleet.core.resources import MemoryLimit, ResourceProfile
from nexus_fleet.core.settings import FleetSettings
from nexus_fleet.fleet.slots import mask_identity
from nexus_fleet.fleet.supervisor import WorkerSupervisor
from nexus_fleet.rotation.lock import RunLock
from nexus_fleet.rotation.oplog import OperationalLog
from nexus_fleet.rotation.pool import IdentityPoolStore, real_identities
from nexus_fleet.rotation.preflight import Preflight
from nexus_fleet.rotation.results import CycleResult, OverallStatus, SlotOutcome, SlotState
from nexus_fleet.rotation.state import RotationStateStore

logger = get_logger(__name__)

CYCLE_COMPLETE_MARKER = "Rotation cycle complete"
SEPARATOR = "=" * 60


def next_index(current: int, count: int) -> int:
    """Round-robin successor of *current* among *count* identities."""
    return (current + 1) % count


class RotationEngine:
    """Runs rotation cycles across the slots named in the identity pool."""

    def __init__(
        self,
        settings: FleetSettings,
        supervisor: WorkerSupervisor,
        pool_store: IdentityPoolStore,
        state_store: RotationStateStore,
        oplog: OperationalLog,
        preflight: Preflight,
        *,
        lock: RunLock | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self.supervisor = supervisor
        self.pool_store = pool_store
        self.state_store = state_store
        self.oplog = oplog
        self.preflight = preflight
        self.lock = lock
        self._sleep = sleep
        self._clock = clock

    def run_cycle(self, only: list[str] | None = None) -> CycleResult:
        """Run one rotation cycle. Restrict to *only* slots when given."""
        result = CycleResult()
        try:
            if self.lock is not None:
                self.lock.acquire()
        except RotationLockedError as exc:
            self.oplog.warning(f"{exc.message}; skipping this run")
            logger.warning("cycle.locked", run_id=result.run_id, path=str(self.lock.path))
            result.error = exc.message
            result.mark_complete(OverallStatus.ERROR)
            return result

        try:
            with LogContext(run_id=result.run_id):
                return self._run_locked(result, only)
        finally:
            if self.lock is not None:
                self.lock.release()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def _run_locked(self, result: CycleResult, only: list[str] | None) -> CycleResult:
        started = self._clock()
        self.oplog.info("Rotation cycle starting")
        logger.info("cycle.started")

        try:
            report = self.preflight.run()
            self.oplog.info(f"Preflight passed (available memory: {report.free_memory_mb}MB)")
            state = self.state_store.load()
        except (ResourceError, ConfigError) as exc:
            self.oplog.failure(exc.message)
            logger.error("cycle.aborted", **exc.to_dict())
            result.error = exc.message
            result.mark_complete(OverallStatus.ERROR)
            return result

        slots = sorted(report.pool)
        if only:
            slots = [slot for slot in slots if slot in only]

        for position, slot in enumerate(slots):
            outcome = self._rotate_slot(slot, report.pool[slot], state.get(slot, 0))
            result.slots.append(outcome)
            if outcome.state is not SlotState.SKIPPED_INELIGIBLE and position < len(slots) - 1:
                self._sleep(self.settings.inter_slot_seconds)

        result.mark_complete()
        elapsed = self._clock() - started
        self.oplog.info(f"{CYCLE_COMPLETE_MARKER}: {result.summary} in {elapsed:.0f}s")
        self.oplog.info(f"Failure details: {self.oplog.failure_log}")
        logger.info(
            "cycle.completed",
            status=result.overall_status.value,
            committed=result.committed,
            failed=result.failed,
            skipped=result.skipped,
        )
        return result

    # ------------------------------------------------------------------
    # Slot
    # ------------------------------------------------------------------

    def _rotate_slot(self, slot: str, identities: list[str], current: int) -> SlotOutcome:
        started = self._clock()
        outcome = SlotOutcome(slot=slot, previous_index=current)
        self.oplog.info(SEPARATOR)
        self.oplog.info(f"Processing {slot} (current index {current})")

        real = real_identities(identities, self.pool_store.placeholder)
        if len(real) < 2:
            message = f"{slot}: fewer than 2 real identities ({len(real)}), add more to the pool"
            self.oplog.warning(message, record_failure=True)
            logger.warning("slot.ineligible", slot=slot, real_identities=len(real))
            outcome.state = SlotState.SKIPPED_INELIGIBLE
            return outcome

        target = next_index(current, len(real))
        identity = real[target]
        outcome.next_index = target
        outcome.identity_masked = mask_identity(identity)
        outcome.state = SlotState.INDEX_COMPUTED
        self.oplog.info(f"Switching to identity [{target}]: {outcome.identity_masked}")

        limit = self._preserved_limit(slot)
        outcome.memory = limit.to_arg()
        profile = ResourceProfile(memory=limit)
        self.oplog.info(f" - memory limit: {outcome.memory}")

        try:
            self.supervisor.destroy(slot)
        except SlotDestroyError as exc:
            return self._fail(outcome, SlotState.DESTROY_FAILED, exc.message, started)
        outcome.state = SlotState.OLD_DESTROYED

        self._sleep(self.settings.settle_seconds)

        try:
            self.supervisor.create(slot, identity, profile)
        except SlotCreateError as exc:
            return self._fail(outcome, SlotState.CREATE_FAILED, exc.message, started, exc.diagnostics)
        outcome.state = SlotState.NEW_CREATED

        if not self.supervisor.health_check(slot):
            error = self.supervisor.fail_health(slot)
            return self._fail(outcome, SlotState.HEALTH_FAILED, error.message, started, error.diagnostics)
        outcome.state = SlotState.HEALTH_VERIFIED

        try:
            self.state_store.commit(slot, target)
        except StateCommitError as exc:
            # The healthy unit stays; the stored index lags until the next commit.
            return self._fail(outcome, SlotState.COMMIT_FAILED, exc.message, started)

        outcome.state = SlotState.COMMITTED
        outcome.duration_seconds = self._clock() - started
        self.oplog.info(f"{slot}: rotated in {outcome.duration_seconds:.0f}s")
        logger.info(
            "slot.committed",
            slot=slot,
            index=target,
            identity=outcome.identity_masked,
            duration_seconds=round(outcome.duration_seconds, 1),
        )
        return outcome

    def _preserved_limit(self, slot: str) -> MemoryLimit:
        try:
            return self.supervisor.resource_limit_of(slot)
        except FleetError as exc:
            logger.warning("slot.limit_unreadable", slot=slot, error=exc.message)
            return self.settings.fallback_limit

    def _fail(
        self,
        outcome: SlotOutcome,
        state: SlotState,
        message: str,
        started: float,
        diagnostics: str = "",
    ) -> SlotOutcome:
        outcome.state = state
        outcome.error = message
        outcome.diagnostics = diagnostics or None
        outcome.duration_seconds = self._clock() - started
        self.oplog.failure(f"{outcome.slot}: {state.value}: {message}")
        if diagnostics:
            self.oplog.info(" - diagnostics:")
            for line in diagnostics.splitlines():
                self.oplog.info(f"   | {line}")
        logger.warning("slot.failed", slot=outcome.slot, state=state.value, error=message)
        return outcome
