"""
Structured error types for nexus-fleet.

Every failure the fleet tooling can report is a :class:`FleetError` carrying
a category, optional structured context, and an optional chained cause. The
category decides how far a failure propagates:

- **Cycle-scoped** (``CONFIG``, ``RESOURCE``, ``ORCHESTRATION``): abort the
  whole rotation cycle before any slot is touched.
- **Slot-scoped** (``SLOT``): logged to the failure log, the slot is skipped,
  the cycle continues with the next slot.
- **Storage** (``STORAGE``): the rotation index could not be persisted. The
  live unit and the stored index disagree until the next successful commit.

Architecture:
    ::

        FleetError
        ├── ConfigError            pool/state file missing or corrupt
        ├── ResourceError          low memory, full disk, runtime unreachable
        ├── RotationLockedError    another rotation run holds the lock
        ├── RuntimeUnavailableError  docker CLI not installed
        ├── StateCommitError       index not persisted
        └── SlotError (slot=...)
            ├── SlotDestroyError
            ├── SlotCreateError    (alias CreateError)
            └── SlotHealthError

Usage:
    from nexus_fleet.core.errors import SlotCreateError

    try:
        supervisor.create(slot, identity, profile)
    except SlotCreateError as exc:
        oplog.failure(f"{exc.slot}: {exc.message}")

Tags:
    error-handling, exception-hierarchy, error-context, rotation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories used for routing and log classification."""

    CONFIG = "CONFIG"                # Pool/state file missing, malformed
    RESOURCE = "RESOURCE"            # Host memory, disk, runtime health
    RUNTIME = "RUNTIME"              # Container runtime CLI problems
    SLOT = "SLOT"                    # Per-slot destroy/create/health
    STORAGE = "STORAGE"              # State persistence
    ORCHESTRATION = "ORCHESTRATION"  # Run locking, scheduling
    INTERNAL = "INTERNAL"            # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        slot: Slot name the error concerns.
        path: File the error concerns (pool, state, lock, log).
        run_id: Rotation cycle identifier.
        command: Runtime command that failed (argument list joined for display).
        metadata: Additional key/value pairs.
    """

    slot: str | None = None
    path: str | None = None
    run_id: str | None = None
    command: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["slot", "path", "run_id", "command"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class FleetError(Exception):
    """Base exception for all nexus-fleet errors.

    Subclasses set ``default_category``; callers may override it per
    instance. ``cause`` is chained as ``__cause__`` so tracebacks keep the
    original failure.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> FleetError:
        """Add context to this error (fluent API).

        Usage:
            raise ConfigError("not a JSON object").with_context(path=str(path))
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CYCLE-SCOPED ERRORS
# =============================================================================


class ConfigError(FleetError):
    """Identity pool or rotation state file is missing or corrupt."""

    default_category = ErrorCategory.CONFIG


class ResourceError(FleetError):
    """Host is not fit for a rotation cycle (memory, disk, runtime)."""

    default_category = ErrorCategory.RESOURCE


class RotationLockedError(FleetError):
    """Another rotation run holds the run lock."""

    default_category = ErrorCategory.ORCHESTRATION


class RuntimeUnavailableError(FleetError):
    """The container runtime CLI is not installed or not on PATH."""

    default_category = ErrorCategory.RUNTIME


class RuntimeCommandError(FleetError):
    """A container runtime command failed or timed out."""

    default_category = ErrorCategory.RUNTIME

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str = "",
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.returncode = returncode
        self.stderr = stderr


# =============================================================================
# SLOT-SCOPED ERRORS
# =============================================================================


class SlotError(FleetError):
    """Failure confined to a single slot; the cycle continues."""

    default_category = ErrorCategory.SLOT

    def __init__(self, slot: str, message: str, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.slot = slot
        self.context.slot = slot


class SlotDestroyError(SlotError):
    """The existing execution unit could not be removed."""


class SlotCreateError(SlotError):
    """The runtime rejected the request to create the execution unit.

    ``diagnostics`` holds the runtime's own error output.
    """

    def __init__(self, slot: str, message: str, *, diagnostics: str = "", **kwargs: Any):
        super().__init__(slot, message, **kwargs)
        self.diagnostics = diagnostics


class SlotHealthError(SlotError):
    """The new execution unit did not reach a running state in time.

    ``diagnostics`` holds the tail of the unit's runtime logs, captured
    before the unit was cleaned up.
    """

    def __init__(self, slot: str, message: str, *, diagnostics: str = "", **kwargs: Any):
        super().__init__(slot, message, **kwargs)
        self.diagnostics = diagnostics


CreateError = SlotCreateError


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StateCommitError(FleetError):
    """The rotation index could not be persisted to the state file."""

    default_category = ErrorCategory.STORAGE


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "FleetError",
    "ConfigError",
    "ResourceError",
    "RotationLockedError",
    "RuntimeUnavailableError",
    "RuntimeCommandError",
    "SlotError",
    "SlotDestroyError",
    "SlotCreateError",
    "SlotHealthError",
    "CreateError",
    "StateCommitError",
]
