"""
CLI utility helpers: context construction and output formatting.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from nexus_fleet.core.errors import FleetError
from nexus_fleet.core.resources import format_bytes
from nexus_fleet.core.settings import get_settings
from nexus_fleet.ops.context import FleetContext
from nexus_fleet.ops.result import OperationResult
from nexus_fleet.rotation.oplog import OperationalLog

console = Console()
err_console = Console(stderr=True)


# ── Context helper ───────────────────────────────────────────────────────


def make_context(caller: str = "cli", *, record_failure: bool = False) -> FleetContext:
    """Create a ``FleetContext`` around the docker CLI, or exit with an error.

    With ``record_failure`` the error is also appended to the rotation and
    failure logs read by ``monitor``.
    """
    settings = get_settings()
    try:
        return FleetContext.from_settings(settings, caller=caller)
    except FleetError as exc:
        if record_failure:
            OperationalLog(settings.rotate_log, settings.failure_log).failure(exc.message)
        err_console.print(f"[bold red]Error[/bold red] ({type(exc).__name__}): {exc.message}")
        raise typer.Exit(code=1) from exc


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def print_warnings(result: OperationResult) -> None:
    for warning in result.warnings:
        err_console.print(f"[yellow]Warning:[/yellow] {warning}")


def fail(result: OperationResult) -> None:
    """Print a failed result and exit 1."""
    print_warnings(result)
    err = result.error
    msg = err.message if err else "Unknown error"
    code = err.code if err else "ERROR"
    err_console.print(f"[bold red]Error[/bold red] ({code}): {msg}")
    diagnostics = err.diagnostics if err else ""
    if diagnostics:
        err_console.print("[dim]Diagnostics:[/dim]")
        for line in diagnostics.splitlines():
            err_console.print(f"  [dim]|[/dim] {line}", markup=False, highlight=False)
    raise typer.Exit(code=1)


def output_result(
    result: OperationResult,
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render an ``OperationResult`` to the terminal."""
    if not result.success:
        fail(result)

    print_warnings(result)
    data = result.data

    if as_json:
        payload = _to_dict(data) if not isinstance(data, list | tuple) else [_to_dict(d) for d in data]
        console.print_json(json.dumps(payload, default=str))
        return

    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table(data, title=title)
    else:
        _print_dict(_to_dict(data), title=title)


def size(value: int) -> str:
    return format_bytes(value) if value else "-"


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(items: list, *, title: str = "") -> None:
    """Render a list of dataclasses/dicts as a Rich table."""
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(str(v) for v in d.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
