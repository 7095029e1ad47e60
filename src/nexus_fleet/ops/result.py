"""
Result envelope for fleet operations.

Operation functions never raise for expected failures. They return an
:class:`OperationResult` so the CLI and the interactive menu render a missing
slot, a rejected unit or a failed health check the same way. A
:class:`~nexus_fleet.core.errors.FleetError` caught inside an operation is
converted with :meth:`OperationResult.from_error`, keeping its category,
context and runtime diagnostics.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from nexus_fleet.core.errors import ErrorCategory, FleetError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class OperationError:
    """Why an operation failed.

    Attributes:
        code: ``NOT_FOUND``, ``VALIDATION_FAILED``, ``CYCLE_ABORTED``, ... or
            the error class name when built from a :class:`FleetError`.
        message: Operator-facing text.
        category: Error category, when the failure came from a FleetError.
        details: Slot, path, runtime diagnostics.
    """

    code: str
    message: str
    category: ErrorCategory | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def diagnostics(self) -> str:
        return str(self.details.get("diagnostics", ""))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


@dataclass
class OperationResult(Generic[T]):
    """Success flag, payload or error, and non-fatal warnings.

    Build with :meth:`ok`, :meth:`fail` or :meth:`from_error`.
    """

    success: bool
    data: T | None = None
    error: OperationError | None = None
    warnings: list[str] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @classmethod
    def ok(cls, data: T, *, warnings: list[str] | None = None, elapsed_ms: float = 0.0) -> OperationResult[T]:
        return cls(True, data=data, warnings=list(warnings or ()), elapsed_ms=elapsed_ms)

    @classmethod
    def fail(
        cls,
        code: str,
        message: str,
        *,
        category: ErrorCategory | None = None,
        details: dict[str, Any] | None = None,
        warnings: list[str] | None = None,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        error = OperationError(code, message, category, dict(details or {}))
        return cls(False, error=error, warnings=list(warnings or ()), elapsed_ms=elapsed_ms)

    @classmethod
    def from_error(
        cls,
        exc: FleetError,
        *,
        warnings: list[str] | None = None,
        elapsed_ms: float = 0.0,
    ) -> OperationResult[T]:
        """Failed result coded with the error class name (``SlotHealthError``)."""
        details = exc.context.to_dict()
        if getattr(exc, "diagnostics", ""):
            details["diagnostics"] = exc.diagnostics
        return cls.fail(
            type(exc).__name__,
            exc.message,
            category=exc.category,
            details=details,
            warnings=warnings,
            elapsed_ms=elapsed_ms,
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form for ``--json`` output; empty parts are omitted."""
        payload: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error.to_dict()
        if self.warnings:
            payload["warnings"] = list(self.warnings)
        if self.elapsed_ms:
            payload["elapsed_ms"] = round(self.elapsed_ms, 2)
        return payload


@dataclass(slots=True)
class Stopwatch:
    """Wall time since creation, in milliseconds."""

    started: float = field(default_factory=time.perf_counter)

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self.started) * 1000


def start_timer() -> Stopwatch:
    return Stopwatch()
