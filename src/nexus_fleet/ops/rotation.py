"""
Rotation operations: run a cycle, check rotation health, deploy scheduling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from nexus_fleet.core.errors import FleetError
from nexus_fleet.core.logging import get_logger
from nexus_fleet.ops.context import FleetContext
from nexus_fleet.ops.result import OperationResult, start_timer
from nexus_fleet.rotation.monitor import MonitorReport
from nexus_fleet.rotation.results import CycleResult, OverallStatus
from nexus_fleet.rotation.schedule import CronInstaller, cron_entries

logger = get_logger(__name__)


@dataclass(slots=True)
class RotationDeployment:
    """What ``deploy_rotation`` set up."""

    pool_file: Path
    state_file: Path
    slots: list[str] = field(default_factory=list)
    template_created: bool = False
    state_added: list[str] = field(default_factory=list)
    cron_changed: bool = False
    cron_entries: list[str] = field(default_factory=list)


def rotate(ctx: FleetContext, only: list[str] | None = None) -> OperationResult[CycleResult]:
    """Run one rotation cycle.

    The envelope fails only when the cycle was aborted (lock held, preflight
    or state error); slot failures are reported inside the cycle result.
    """
    timer = start_timer()
    result = ctx.engine().run_cycle(only=only)
    if result.overall_status is OverallStatus.ERROR:
        op: OperationResult[CycleResult] = OperationResult.fail(
            "CYCLE_ABORTED", result.error or "Rotation cycle aborted", elapsed_ms=timer.elapsed_ms
        )
        op.data = result
        return op
    warnings = [f"{s.slot}: {s.state.value}: {s.error}" for s in result.slots if s.state.is_failure]
    return OperationResult.ok(result, warnings=warnings, elapsed_ms=timer.elapsed_ms)


def check_rotation(ctx: FleetContext) -> OperationResult[MonitorReport]:
    """Check rotation logs for missing, failed or stale cycles."""
    timer = start_timer()
    report = ctx.monitor().check()
    if not report.healthy:
        op: OperationResult[MonitorReport] = OperationResult.fail(
            "ROTATION_UNHEALTHY", f"{len(report.alerts)} alert(s)", elapsed_ms=timer.elapsed_ms
        )
        op.data = report
        return op
    return OperationResult.ok(report, elapsed_ms=timer.elapsed_ms)


def deploy_rotation(
    ctx: FleetContext,
    installer: CronInstaller | None = None,
) -> OperationResult[RotationDeployment]:
    """Prepare pool and state files and install the cron schedule.

    Without a pool file, a template is written from the running slots: each
    gets its current identity followed by the placeholder, to be filled in by
    hand before rotation becomes effective.
    """
    timer = start_timer()
    settings = ctx.settings
    installer = installer or CronInstaller()
    pool_store = ctx.pool_store
    state_store = ctx.state_store
    deployment = RotationDeployment(pool_file=settings.pool_file, state_file=settings.state_file)

    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        settings.log_dir.chmod(0o755)
    except OSError as exc:
        return OperationResult.fail(
            "LOG_DIR_UNWRITABLE", f"Cannot prepare {settings.log_dir}: {exc}", elapsed_ms=timer.elapsed_ms
        )

    try:
        if not pool_store.exists():
            running = ctx.runtime.list_names(settings.slot_prefix, include_stopped=False)
            if not running:
                return OperationResult.fail(
                    "NO_RUNNING_UNITS",
                    "No running slots to build an identity pool from; start instances first",
                    elapsed_ms=timer.elapsed_ms,
                )
            identities = {name: ctx.supervisor.current_identity(name) for name in running}
            deployment.template_created = pool_store.write_template(identities)

        pool = pool_store.load()
        deployment.slots = sorted(pool)
        deployment.state_added = state_store.ensure(deployment.slots)

        deployment.cron_entries = cron_entries(settings)
        deployment.cron_changed = installer.install(deployment.cron_entries)
    except FleetError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
    except OSError as exc:
        return OperationResult.fail("DEPLOY_FAILED", str(exc), elapsed_ms=timer.elapsed_ms)

    warnings = []
    if deployment.template_created:
        warnings.append(
            f"Identity pool template written to {settings.pool_file}; replace "
            f"'{settings.placeholder}' entries with real identities"
        )
    logger.info(
        "rotation.deployed",
        slots=len(deployment.slots),
        template_created=deployment.template_created,
        cron_changed=deployment.cron_changed,
    )
    return OperationResult.ok(deployment, warnings=warnings, elapsed_ms=timer.elapsed_ms)
