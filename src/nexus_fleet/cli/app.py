"""
Root Typer application for the nexus-fleet CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from nexus_fleet.core.logging import configure_logging
from nexus_fleet.core.settings import get_settings

app = Typer(
    name="nexus-fleet",
    help="nexus-fleet: Nexus prover-node fleet manager with identity rotation.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from nexus_fleet import __version__

        typer.echo(f"nexus-fleet {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override NEXUS_LOG_LEVEL."),
) -> None:
    """nexus-fleet CLI: manage prover-node slots and rotate their identities."""
    settings = get_settings()
    try:
        configure_logging(level=log_level or settings.log_level, json_format=settings.json_logs)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc


# ── Command registration ─────────────────────────────────────────────────

from nexus_fleet.cli import fleet, menu, rotation  # noqa: E402

app.command("start")(fleet.start)
app.command("stop-all")(fleet.stop_all)
app.command("restart")(fleet.restart)
app.command("list")(fleet.list_slots)
app.command("change-id")(fleet.change_id)
app.command("add")(fleet.add)
app.command("logs")(fleet.logs)
app.command("stats")(fleet.stats)
app.command("build")(fleet.build)
app.command("rotate")(rotation.rotate)
app.command("monitor")(rotation.monitor)
app.command("deploy-rotation")(rotation.deploy_rotation)
app.command("menu")(menu.menu)
