"""
CLI: identity rotation commands.

Usage::

    nexus-fleet rotate                     # one cycle over the whole pool (cron entry point)
    nexus-fleet rotate -s nexus-node-2     # restrict to one slot
    nexus-fleet monitor                    # alert on failed or stale rotation
    nexus-fleet deploy-rotation            # pool/state files + cron schedule
"""

from __future__ import annotations

import typer
from rich.table import Table

from nexus_fleet.cli.utils import console, err_console, fail, make_context, print_warnings
from nexus_fleet.fleet.slots import resolve_slot
from nexus_fleet.ops import rotation as ops
from nexus_fleet.rotation.results import CycleResult, OverallStatus

_STATE_STYLE = {
    "COMMITTED": "green",
    "SKIPPED_INELIGIBLE": "yellow",
    "COMMIT_FAILED": "yellow",
}


def rotate(
    slot: list[str] = typer.Option([], "--slot", "-s", help="Only rotate these slots. Repeatable."),
    json_out: bool = typer.Option(False, "--json", help="Output the cycle result as JSON."),
) -> None:
    """Run one rotation cycle."""
    ctx = make_context(caller="cron", record_failure=True)
    only = [resolve_slot(s, ctx.settings.slot_prefix) for s in slot] or None
    result = ops.rotate(ctx, only)
    cycle = result.data

    if json_out and cycle is not None:
        typer.echo(cycle.model_dump_json(indent=2))
    elif cycle is not None and result.success:
        _print_cycle(cycle)

    if not result.success:
        fail(result)
    print_warnings(result)
    if cycle is not None and cycle.overall_status is OverallStatus.FAILED:
        raise typer.Exit(code=1)


def monitor() -> None:
    """Check rotation logs and report alerts."""
    ctx = make_context(caller="cron")
    result = ops.check_rotation(ctx)
    if not result.success:
        for alert in result.data.alerts if result.data else []:
            err_console.print(f"[bold yellow]ALERT[/bold yellow] {alert}")
        raise typer.Exit(code=1)
    console.print("[green]Rotation healthy[/green]")


def deploy_rotation() -> None:
    """Prepare identity pool and state files and install the cron schedule."""
    ctx = make_context()
    result = ops.deploy_rotation(ctx)
    if not result.success:
        fail(result)
    print_warnings(result)

    deployment = result.data
    console.print("[bold green]Rotation deployed[/bold green]")
    created = " (template created)" if deployment.template_created else ""
    console.print(f"  identity pool: {deployment.pool_file}{created}")
    console.print(f"  state file:    {deployment.state_file}")
    console.print(f"  slots:         {', '.join(deployment.slots) or '-'}")
    console.print(f"  cron:          {'installed' if deployment.cron_changed else 'already installed'}")
    for entry in deployment.cron_entries:
        console.print(f"    [dim]{entry}[/dim]", highlight=False)
    console.print(f"  rotation log:  {ctx.settings.rotate_log}")
    console.print(f"  cron output:   {ctx.settings.rotate_output}")
    console.print(f"  failure log:   {ctx.settings.failure_log}")


def _print_cycle(cycle: CycleResult) -> None:
    table = Table(title=f"Rotation {cycle.run_id}: {cycle.overall_status.value}")
    table.add_column("Slot", style="cyan")
    table.add_column("State")
    table.add_column("Index")
    table.add_column("Identity")
    table.add_column("Memory")
    table.add_column("Error", overflow="fold")
    for outcome in cycle.slots:
        style = _STATE_STYLE.get(outcome.state.value, "red")
        index = "-" if outcome.next_index is None else f"{outcome.previous_index} -> {outcome.next_index}"
        table.add_row(
            outcome.slot,
            f"[{style}]{outcome.state.value}[/{style}]",
            index,
            outcome.identity_masked or "-",
            outcome.memory or "-",
            outcome.error or "",
        )
    console.print(table)
    console.print(cycle.summary)
