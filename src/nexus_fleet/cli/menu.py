"""
CLI: interactive numbered menu.

Each entry delegates to the command of the same purpose; a failing command
returns to the menu instead of ending the session.
"""

from __future__ import annotations

import typer

from nexus_fleet.cli import fleet, rotation
from nexus_fleet.cli.utils import console

MENU = (
    ("1", "Build image and start new instances"),
    ("2", "Stop all instances"),
    ("3", "Restart an instance"),
    ("4", "List instances and identities"),
    ("5", "Exit"),
    ("6", "Change an instance's node-id (recreates it)"),
    ("7", "Add one instance"),
    ("8", "View an instance's log"),
    ("9", "Deploy automatic identity rotation"),
    ("10", "Show resource usage"),
    ("11", "Run a rotation cycle now"),
)

EXIT_CHOICE = "5"


def _not_empty(value: str) -> str:
    value = value.strip()
    if not value:
        raise typer.BadParameter("a value is required")
    return value


def _ask(text: str) -> str:
    return typer.prompt(text, value_proc=_not_empty)


def _memory() -> str | None:
    value = typer.prompt("Memory ceiling (blank keeps the current one)", default="", show_default=False)
    return value.strip() or None


def _dispatch(choice: str) -> None:
    if choice == "1":
        fleet.start(identity=[], memory=_memory(), build=True)
    elif choice == "2":
        if typer.confirm("Stop and remove all instances?"):
            fleet.stop_all(yes=True)
    elif choice == "3":
        fleet.restart(slot=_ask("Instance number"), memory=_memory())
    elif choice == "4":
        fleet.list_slots(json_out=False)
    elif choice == "6":
        fleet.change_id(slot=_ask("Instance number"), identity=_ask("New node-id"), memory=_memory())
    elif choice == "7":
        fleet.add(identity=_ask("node-id for the new instance"), memory=_memory())
    elif choice == "8":
        fleet.logs(slot=_ask("Instance number"), lines=50, follow=True)
    elif choice == "9":
        rotation.deploy_rotation()
    elif choice == "10":
        fleet.stats(json_out=False)
    elif choice == "11":
        rotation.rotate(slot=[], json_out=False)
    else:
        console.print(f"[red]Invalid choice, enter 1-{len(MENU)}[/red]")


def menu() -> None:
    """Interactive menu over all fleet operations."""
    while True:
        console.print()
        console.rule("[bold]Nexus node management[/bold]")
        for key, label in MENU:
            console.print(f"{key:>3}. {label}")
        console.rule()
        choice = typer.prompt(f"Choose an option (1-{len(MENU)})").strip()
        if choice == EXIT_CHOICE:
            console.print("Bye.")
            raise typer.Exit()
        try:
            _dispatch(choice)
        except typer.Exit:
            pass
        except typer.Abort:
            console.print("[dim]Cancelled.[/dim]")
