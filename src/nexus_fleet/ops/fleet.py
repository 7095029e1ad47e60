"""
Fleet inventory and manual slot operations.

These share the worker supervisor with the rotation engine but bypass its
batch logic: no preflight, no run lock, and the rotation state store is never
read or written. A manual change of identity is therefore invisible to the
rotation index; the next cycle advances from the stored index as usual.

Memory ceilings: unless the operator supplies one, a replaced slot keeps the
ceiling of its current unit (the fallback ceiling if it has none) and a new
slot gets the default ceiling.
"""

from __future__ import annotations

import collections
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

import psutil

from nexus_fleet.core.errors import FleetError, SlotError
from nexus_fleet.core.logging import get_logger
from nexus_fleet.core.resources import MemoryLimit, ResourceProfile
from nexus_fleet.fleet.slots import first_free_slot, mask_identity, slot_name
from nexus_fleet.ops.context import FleetContext
from nexus_fleet.ops.result import OperationResult, Stopwatch, start_timer
from nexus_fleet.runtime.image import BuildContext, build_image
from nexus_fleet.runtime.units import UnitStats

logger = get_logger(__name__)


@dataclass(slots=True)
class SlotSummary:
    """One managed slot as seen by the runtime."""

    name: str
    identity: str | None = None
    status: str = "unknown"
    memory_usage: int = 0
    memory_limit: int = 0
    memory_percent: float = 0.0


@dataclass(slots=True)
class SlotChange:
    """Result of a manual replace/add/restart."""

    slot: str
    identity: str
    memory: str
    container_id: str = ""


@dataclass(slots=True)
class HostStats:
    """Host memory and disk plus per-unit usage."""

    memory_total: int = 0
    memory_available: int = 0
    memory_percent: float = 0.0
    disk_total: int = 0
    disk_used: int = 0
    disk_percent: float = 0.0
    units: list[UnitStats] = field(default_factory=list)


# ------------------------------------------------------------------ #
# Queries
# ------------------------------------------------------------------ #


def list_slots(ctx: FleetContext) -> OperationResult[list[SlotSummary]]:
    """List every unit named with the slot prefix, with identity and memory."""
    timer = start_timer()
    prefix = ctx.settings.slot_prefix
    try:
        names = ctx.runtime.list_names(prefix)
        stats = {s.name: s for s in ctx.runtime.stats(names)}
        summaries = []
        for name in names:
            usage = stats.get(name)
            summaries.append(
                SlotSummary(
                    name=name,
                    identity=ctx.supervisor.current_identity(name),
                    status=ctx.runtime.status(name),
                    memory_usage=usage.memory_usage if usage else 0,
                    memory_limit=usage.memory_limit if usage else 0,
                    memory_percent=usage.memory_percent if usage else 0.0,
                )
            )
    except FleetError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(summaries, elapsed_ms=timer.elapsed_ms)


def tail_log(
    ctx: FleetContext,
    slot: str,
    lines: int = 50,
    follow: bool = False,
) -> OperationResult[Iterator[str]]:
    """Last *lines* of a slot's log file, optionally following new output."""
    timer = start_timer()
    path = ctx.supervisor.log_path_for(slot)
    if not path.is_file():
        return OperationResult.fail(
            "NOT_FOUND",
            f"Log file for {slot} not found: {path}",
            details={"slot": slot, "path": str(path)},
            elapsed_ms=timer.elapsed_ms,
        )
    iterator = _follow(path, lines, ctx.sleep) if follow else iter(_last_lines(path, lines))
    return OperationResult.ok(iterator, elapsed_ms=timer.elapsed_ms)


def resource_stats(ctx: FleetContext) -> OperationResult[HostStats]:
    """Host memory/disk usage and one-shot stats for running slots."""
    timer = start_timer()
    memory = psutil.virtual_memory()
    disk = psutil.disk_usage(str(ctx.settings.disk_path))
    stats = HostStats(
        memory_total=memory.total,
        memory_available=memory.available,
        memory_percent=memory.percent,
        disk_total=disk.total,
        disk_used=disk.used,
        disk_percent=disk.percent,
    )
    try:
        running = ctx.runtime.list_names(ctx.settings.slot_prefix, include_stopped=False)
        stats.units = ctx.runtime.stats(running)
    except FleetError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return OperationResult.ok(stats, elapsed_ms=timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Manual changes
# ------------------------------------------------------------------ #


def manual_replace(
    ctx: FleetContext,
    slot: str,
    identity: str,
    memory: str | None = None,
) -> OperationResult[SlotChange]:
    """Replace a slot's unit with one bound to *identity*."""
    timer = start_timer()
    identity = identity.strip()
    if not identity:
        return OperationResult.fail("VALIDATION_FAILED", "Identity must not be empty", elapsed_ms=timer.elapsed_ms)
    try:
        limit = _parse_memory(memory) if memory else ctx.supervisor.resource_limit_of(slot)
    except ValueError as exc:
        return OperationResult.fail("VALIDATION_FAILED", str(exc), elapsed_ms=timer.elapsed_ms)
    except FleetError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return _replace(ctx, slot, identity, limit, timer)


def manual_add(
    ctx: FleetContext,
    identity: str,
    memory: str | None = None,
) -> OperationResult[SlotChange]:
    """Start a unit in the first free slot (``nexus-node-1``, ``-2``, ...)."""
    timer = start_timer()
    identity = identity.strip()
    if not identity:
        return OperationResult.fail("VALIDATION_FAILED", "Identity must not be empty", elapsed_ms=timer.elapsed_ms)
    try:
        limit = _parse_memory(memory) if memory else ctx.settings.default_limit
        existing = ctx.runtime.list_names(ctx.settings.slot_prefix)
    except ValueError as exc:
        return OperationResult.fail("VALIDATION_FAILED", str(exc), elapsed_ms=timer.elapsed_ms)
    except FleetError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    slot = first_free_slot(existing, ctx.settings.slot_prefix)
    return _replace(ctx, slot, identity, limit, timer)


def manual_restart(
    ctx: FleetContext,
    slot: str,
    memory: str | None = None,
) -> OperationResult[SlotChange]:
    """Recreate a slot's unit with the identity it is running now."""
    timer = start_timer()
    try:
        if ctx.runtime.inspect(slot) is None:
            return OperationResult.fail(
                "NOT_FOUND", f"No unit named {slot}", details={"slot": slot}, elapsed_ms=timer.elapsed_ms
            )
        identity = ctx.supervisor.current_identity(slot)
        if not identity:
            return OperationResult.fail(
                "NO_IDENTITY",
                f"{slot} carries no NODE_ID; use change-id instead",
                details={"slot": slot},
                elapsed_ms=timer.elapsed_ms,
            )
        limit = _parse_memory(memory) if memory else ctx.supervisor.resource_limit_of(slot)
    except ValueError as exc:
        return OperationResult.fail("VALIDATION_FAILED", str(exc), elapsed_ms=timer.elapsed_ms)
    except FleetError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    return _replace(ctx, slot, identity, limit, timer)


def start_instances(
    ctx: FleetContext,
    identities: list[str],
    memory: str | None = None,
) -> OperationResult[list[SlotChange]]:
    """Start slots 1..N, one per identity. Empty identities are skipped."""
    timer = start_timer()
    if not identities:
        return OperationResult.fail(
            "VALIDATION_FAILED", "At least one identity is required", elapsed_ms=timer.elapsed_ms
        )
    try:
        limit = _parse_memory(memory) if memory else ctx.settings.default_limit
    except ValueError as exc:
        return OperationResult.fail("VALIDATION_FAILED", str(exc), elapsed_ms=timer.elapsed_ms)

    started: list[SlotChange] = []
    warnings: list[str] = []
    for number, identity in enumerate(identities, start=1):
        slot = slot_name(ctx.settings.slot_prefix, number)
        identity = identity.strip()
        if not identity:
            warnings.append(f"{slot}: empty identity, skipped")
            continue
        result = _replace(ctx, slot, identity, limit, timer)
        if result.success and result.data is not None:
            started.append(result.data)
        elif result.error is not None:
            warnings.append(f"{slot}: {result.error.message}")

    if not started:
        return OperationResult.fail(
            "START_FAILED", "No instance was started", warnings=warnings, elapsed_ms=timer.elapsed_ms
        )
    return OperationResult.ok(started, warnings=warnings, elapsed_ms=timer.elapsed_ms)


def stop_all(ctx: FleetContext) -> OperationResult[list[str]]:
    """Remove every unit whose name carries the slot prefix."""
    timer = start_timer()
    removed: list[str] = []
    warnings: list[str] = []
    try:
        names = ctx.runtime.list_names(ctx.settings.slot_prefix)
    except FleetError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    for name in names:
        try:
            ctx.supervisor.destroy(name)
            removed.append(name)
        except SlotError as exc:
            warnings.append(f"{name}: {exc.message}")
    logger.info("fleet.stopped", removed=len(removed), failed=len(warnings))
    return OperationResult.ok(removed, warnings=warnings, elapsed_ms=timer.elapsed_ms)


def build(ctx: FleetContext) -> OperationResult[BuildContext]:
    """Write the build context and build the prover-node image."""
    timer = start_timer()
    settings = ctx.settings
    try:
        context = build_image(ctx.runtime, settings.image_name, settings.build_dir, settings.log_dir)
    except FleetError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except OSError as exc:
        return OperationResult.fail(
            "BUILD_CONTEXT_FAILED", f"Cannot write build context: {exc}", elapsed_ms=timer.elapsed_ms
        )
    return OperationResult.ok(context, elapsed_ms=timer.elapsed_ms)


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _replace(
    ctx: FleetContext, slot: str, identity: str, limit: MemoryLimit, timer: Stopwatch
) -> OperationResult[SlotChange]:
    try:
        container_id = ctx.supervisor.replace(slot, identity, ResourceProfile(memory=limit))
    except SlotError as exc:
        logger.warning("fleet.replace_failed", slot=slot, error=exc.message)
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    logger.info(
        "fleet.replaced",
        slot=slot,
        identity=mask_identity(identity),
        memory=limit.to_arg(),
        caller=ctx.caller,
    )
    change = SlotChange(slot=slot, identity=identity, memory=limit.to_arg(), container_id=container_id)
    return OperationResult.ok(change, elapsed_ms=timer.elapsed_ms)


def _parse_memory(value: str) -> MemoryLimit:
    limit = MemoryLimit.parse(value)
    if limit.is_unlimited:
        return limit
    if limit.megabytes < 6:
        raise ValueError(f"Memory limit too small: {value} (the runtime minimum is 6m)")
    return limit


def _last_lines(path: Path, count: int) -> list[str]:
    with path.open(encoding="utf-8", errors="replace") as handle:
        return [line.rstrip("\n") for line in collections.deque(handle, maxlen=count)]


def _follow(path: Path, count: int, sleep: Callable[[float], None], interval: float = 1.0) -> Iterator[str]:
    yield from _last_lines(path, count)
    with path.open(encoding="utf-8", errors="replace") as handle:
        handle.seek(0, 2)
        while True:
            line = handle.readline()
            if line:
                yield line.rstrip("\n")
            else:
                sleep(interval)
