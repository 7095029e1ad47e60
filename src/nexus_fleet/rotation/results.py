"""Result models for rotation cycles.

A :class:`CycleResult` is built up by the engine as it walks the slots and
finalised with ``mark_complete()``. Each slot ends in exactly one terminal
:class:`SlotState`; the overall status is derived from those states.

Key Concepts:
    SlotState: ``PENDING -> INDEX_COMPUTED -> OLD_DESTROYED -> NEW_CREATED
        -> HEALTH_VERIFIED -> COMMITTED``, or one of the failure exits.
    SlotOutcome: Final state of one slot, with the indices and the error
        that stopped it.
    CycleResult: Per-slot outcomes, summary counts, overall status.

Tags:
    results, models, pydantic, rotation, status
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


class OverallStatus(str, Enum):
    """Overall status of a rotation cycle."""

    PASSED = "PASSED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    ERROR = "ERROR"
    PENDING = "PENDING"


class SlotState(str, Enum):
    """Progress of one slot through a rotation cycle."""

    PENDING = "PENDING"
    INDEX_COMPUTED = "INDEX_COMPUTED"
    OLD_DESTROYED = "OLD_DESTROYED"
    NEW_CREATED = "NEW_CREATED"
    HEALTH_VERIFIED = "HEALTH_VERIFIED"
    COMMITTED = "COMMITTED"

    SKIPPED_INELIGIBLE = "SKIPPED_INELIGIBLE"
    DESTROY_FAILED = "DESTROY_FAILED"
    CREATE_FAILED = "CREATE_FAILED"
    HEALTH_FAILED = "HEALTH_FAILED"
    COMMIT_FAILED = "COMMIT_FAILED"

    @property
    def is_failure(self) -> bool:
        return self in _FAILURES


_FAILURES = frozenset(
    {SlotState.DESTROY_FAILED, SlotState.CREATE_FAILED, SlotState.HEALTH_FAILED, SlotState.COMMIT_FAILED}
)


class SlotOutcome(BaseModel):
    """Final state of one slot in a cycle."""

    slot: str
    state: SlotState = SlotState.PENDING
    previous_index: int | None = None
    next_index: int | None = None
    identity_masked: str | None = None
    memory: str | None = None
    error: str | None = None
    diagnostics: str | None = None
    duration_seconds: float = 0.0


class CycleResult(BaseModel):
    """Outcome of one rotation cycle."""

    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    completed_at: str | None = None
    duration_seconds: float = 0.0
    slots: list[SlotOutcome] = Field(default_factory=list)
    overall_status: OverallStatus = OverallStatus.PENDING
    error: str | None = None
    summary: str = ""

    def outcome(self, slot: str) -> SlotOutcome | None:
        for outcome in self.slots:
            if outcome.slot == slot:
                return outcome
        return None

    def count(self, state: SlotState) -> int:
        return sum(1 for s in self.slots if s.state == state)

    @property
    def committed(self) -> int:
        return self.count(SlotState.COMMITTED)

    @property
    def failed(self) -> int:
        return sum(1 for s in self.slots if s.state.is_failure)

    @property
    def skipped(self) -> int:
        return self.count(SlotState.SKIPPED_INELIGIBLE)

    def mark_complete(self, status: OverallStatus | None = None) -> None:
        """Finalise timestamps and derive the overall status from slot states."""
        self.completed_at = datetime.now(UTC).isoformat()
        start = datetime.fromisoformat(self.started_at)
        end = datetime.fromisoformat(self.completed_at)
        self.duration_seconds = (end - start).total_seconds()

        eligible = len(self.slots) - self.skipped
        if status:
            self.overall_status = status
        elif eligible == 0:
            self.overall_status = OverallStatus.SKIPPED
        elif self.committed == eligible:
            self.overall_status = OverallStatus.PASSED
        elif self.committed > 0 or self.count(SlotState.COMMIT_FAILED) > 0:
            self.overall_status = OverallStatus.PARTIAL
        else:
            self.overall_status = OverallStatus.FAILED

        self.summary = (
            f"{self.committed}/{eligible} rotated, {self.failed} failed, {self.skipped} skipped"
        )
