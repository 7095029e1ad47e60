"""
CLI: fleet management commands.

Usage::

    nexus-fleet start -i ID1 -i ID2 --memory 5g     # slots 1..N
    nexus-fleet start --build                       # build image, prompt for ids
    nexus-fleet list                                # slots, identities, memory
    nexus-fleet change-id 2 NEW_ID                  # replace nexus-node-2
    nexus-fleet add NEW_ID                          # first free slot
    nexus-fleet restart 2
    nexus-fleet logs 2 --follow
    nexus-fleet stats
    nexus-fleet stop-all --yes
    nexus-fleet build
"""

from __future__ import annotations

import typer
from rich.table import Table

from nexus_fleet.cli.utils import console, fail, make_context, output_result, print_warnings, size
from nexus_fleet.fleet.slots import mask_identity, resolve_slot
from nexus_fleet.ops import fleet as ops
from nexus_fleet.ops.context import FleetContext
from nexus_fleet.ops.result import OperationResult


def start(
    identity: list[str] = typer.Option([], "--identity", "-i", help="Node-id per slot. Repeatable."),
    memory: str | None = typer.Option(None, "--memory", "-m", help="Memory ceiling, e.g. 5g or unlimited."),
    build: bool = typer.Option(False, "--build", help="Build the image before starting."),
) -> None:
    """Start slots 1..N, one per identity (prompts when none are given)."""
    ctx = make_context()
    if build:
        _build(ctx)

    identities = list(identity)
    if not identities:
        count = typer.prompt("Number of instances to create", type=int)
        if count < 1:
            console.print("[red]Enter a positive number.[/red]")
            raise typer.Exit(code=1)
        identities = [
            typer.prompt(f"node-id for instance {n}", default="", show_default=False)
            for n in range(1, count + 1)
        ]

    result = ops.start_instances(ctx, identities, memory)
    if not result.success:
        fail(result)
    print_warnings(result)
    for change in result.data or []:
        console.print(
            f"[green]Started[/green] {change.slot}  identity={mask_identity(change.identity)}  memory={change.memory}"
        )


def stop_all(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Remove every managed slot unit."""
    if not yes:
        typer.confirm("Stop and remove all nexus-node units?", abort=True)
    ctx = make_context()
    result = ops.stop_all(ctx)
    if not result.success:
        fail(result)
    print_warnings(result)
    for name in result.data or []:
        console.print(f"Stopped {name}")
    if not result.data:
        console.print("[dim]No units to stop.[/dim]")


def restart(
    slot: str = typer.Argument(..., help="Slot number or name."),
    memory: str | None = typer.Option(None, "--memory", "-m", help="New memory ceiling (default: keep)."),
) -> None:
    """Recreate a slot with its current identity."""
    ctx = make_context()
    result = ops.manual_restart(ctx, resolve_slot(slot, ctx.settings.slot_prefix), memory)
    _report_change(result, "Restarted")


def change_id(
    slot: str = typer.Argument(..., help="Slot number or name."),
    identity: str = typer.Argument(..., help="New node-id."),
    memory: str | None = typer.Option(None, "--memory", "-m", help="New memory ceiling (default: keep)."),
) -> None:
    """Replace a slot's unit with one bound to a new identity."""
    ctx = make_context()
    result = ops.manual_replace(ctx, resolve_slot(slot, ctx.settings.slot_prefix), identity, memory)
    _report_change(result, "Replaced")


def add(
    identity: str = typer.Argument(..., help="Node-id for the new slot."),
    memory: str | None = typer.Option(None, "--memory", "-m", help="Memory ceiling (default from settings)."),
) -> None:
    """Start a unit in the first free slot."""
    ctx = make_context()
    result = ops.manual_add(ctx, identity, memory)
    _report_change(result, "Added")
    if result.data is not None:
        console.print(f"Log file: {ctx.supervisor.log_path_for(result.data.slot)}")


def list_slots(
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """List managed slots with live identity and memory usage."""
    ctx = make_context()
    result = ops.list_slots(ctx)
    if json_out or not result.success:
        output_result(result, as_json=json_out)
        return

    slots = result.data or []
    if not slots:
        console.print("[dim]No managed slots.[/dim]")
        return
    table = Table(title="Nexus slots")
    table.add_column("Slot", style="cyan")
    table.add_column("Identity")
    table.add_column("Status")
    table.add_column("Memory")
    for s in slots:
        status_style = "green" if s.status == "running" else "red"
        table.add_row(
            s.name,
            s.identity or "[dim]unknown[/dim]",
            f"[{status_style}]{s.status}[/{status_style}]",
            f"{size(s.memory_usage)} / {size(s.memory_limit)} ({s.memory_percent:.1f}%)",
        )
    console.print(table)


def logs(
    slot: str = typer.Argument(..., help="Slot number or name."),
    lines: int = typer.Option(50, "--lines", "-n", help="Lines to show."),
    follow: bool = typer.Option(False, "--follow", "-f", help="Follow new output."),
) -> None:
    """Show a slot's log file."""
    ctx = make_context()
    result = ops.tail_log(ctx, resolve_slot(slot, ctx.settings.slot_prefix), lines, follow)
    if not result.success:
        fail(result)
    try:
        for line in result.data or iter(()):
            typer.echo(line)
    except KeyboardInterrupt:
        raise typer.Exit() from None


def stats(
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Host memory and disk plus live per-unit usage."""
    ctx = make_context()
    result = ops.resource_stats(ctx)
    if json_out or not result.success:
        output_result(result, as_json=json_out)
        return

    host = result.data
    console.print("[bold]Host[/bold]")
    console.print(
        f"  memory: {size(host.memory_available)} available of {size(host.memory_total)} "
        f"({host.memory_percent:.1f}% used)"
    )
    console.print(f"  disk:   {size(host.disk_used)} of {size(host.disk_total)} ({host.disk_percent:.1f}% used)")
    if not host.units:
        console.print("[dim]No running slots.[/dim]")
        return
    table = Table(title="Units")
    table.add_column("Slot", style="cyan")
    table.add_column("CPU %", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("Mem %", justify="right")
    for unit in host.units:
        table.add_row(
            unit.name,
            f"{unit.cpu_percent:.1f}",
            f"{size(unit.memory_usage)} / {size(unit.memory_limit)}",
            f"{unit.memory_percent:.1f}",
        )
    console.print(table)


def build() -> None:
    """Write the build context and build the prover-node image."""
    _build(make_context())


# ── Helpers ──────────────────────────────────────────────────────────────


def _build(ctx: FleetContext) -> None:
    console.print(f"Building [bold]{ctx.settings.image_name}[/bold] from {ctx.settings.build_dir} ...")
    result = ops.build(ctx)
    if not result.success:
        fail(result)
    source = "stable binary" if result.data.uses_stable_binary else "upstream installer"
    console.print(f"[green]Image built[/green] ({source})")


def _report_change(result: OperationResult, verb: str) -> None:
    if not result.success:
        fail(result)
    change = result.data
    console.print(
        f"[green]{verb}[/green] {change.slot}  identity={mask_identity(change.identity)}  memory={change.memory}"
    )
