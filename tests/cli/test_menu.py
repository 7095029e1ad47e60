"""Tests for the interactive menu (nexus_fleet.cli.menu)."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from nexus_fleet.cli.app import app
from nexus_fleet.cli.menu import EXIT_CHOICE, MENU

runner = CliRunner()


@pytest.fixture(autouse=True)
def patched_context(ctx):
    with patch("nexus_fleet.cli.fleet.make_context", return_value=ctx), patch(
        "nexus_fleet.cli.rotation.make_context", return_value=ctx
    ):
        yield ctx


def run_menu(text: str):
    return runner.invoke(app, ["--log-level", "CRITICAL", "menu"], input=text)


def test_exit_choice():
    result = run_menu("5\n")
    assert result.exit_code == 0
    for _, label in MENU:
        assert label in result.output


def test_list_then_exit(fake_runtime):
    fake_runtime.add_unit("nexus-node-1", "id-one")
    result = run_menu("4\n5\n")
    assert result.exit_code == 0
    assert "nexus-node-1" in result.output


def test_invalid_choice_returns_to_menu():
    result = run_menu("42\n5\n")
    assert result.exit_code == 0
    assert "Invalid choice" in result.output


def test_failed_command_returns_to_menu():
    result = run_menu("3\n9\n\n5\n")
    assert result.exit_code == 0
    assert "NOT_FOUND" in result.output


def test_change_id(fake_runtime):
    fake_runtime.add_unit("nexus-node-2", "id-old")
    result = run_menu("6\n2\nid-new\n\n5\n")
    assert result.exit_code == 0, result.output
    assert fake_runtime.identity_of("nexus-node-2") == "id-new"


def test_empty_answer_is_reprompted(fake_runtime):
    result = run_menu("7\n\nid-fresh\n\n5\n")
    assert result.exit_code == 0, result.output
    assert fake_runtime.identity_of("nexus-node-1") == "id-fresh"


def test_stop_all_declined(fake_runtime):
    fake_runtime.add_unit("nexus-node-1", "a")
    result = run_menu("2\nn\n5\n")
    assert result.exit_code == 0
    assert "nexus-node-1" in fake_runtime.units


def test_menu_numbering():
    assert [key for key, _ in MENU] == [str(n) for n in range(1, 12)]
    assert dict(MENU)[EXIT_CHOICE] == "Exit"
