"""
Tests for CLI utilities.
"""

from __future__ import annotations

from dataclasses import dataclass
from unittest.mock import patch

import pytest
import typer

from nexus_fleet.cli.utils import _to_dict, fail, make_context, size
from nexus_fleet.ops.result import OperationResult


@dataclass
class _Sample:
    name: str = "nexus-node-1"
    count: int = 0


class TestToDict:
    def test_dataclass(self):
        assert _to_dict(_Sample(count=5)) == {"name": "nexus-node-1", "count": 5}

    def test_dict_passthrough(self):
        assert _to_dict({"a": 1}) == {"a": 1}

    def test_pydantic(self):
        from pydantic import BaseModel

        class M(BaseModel):
            x: int = 1

        assert _to_dict(M()) == {"x": 1}

    def test_other(self):
        assert _to_dict("hello") == {"value": "hello"}


class TestFail:
    def test_exits_with_code_1(self, capsys):
        result = OperationResult.fail("NOT_FOUND", "No unit named nexus-node-9", details={"diagnostics": "x"})
        with pytest.raises(typer.Exit) as excinfo:
            fail(result)
        assert excinfo.value.exit_code == 1
        assert "NOT_FOUND" in capsys.readouterr().err


def test_size():
    assert size(0) == "-"
    assert size(1536) == "1.5KiB"


def test_make_context_without_docker():
    with patch("nexus_fleet.runtime.docker.shutil.which", return_value=None):
        with pytest.raises(typer.Exit):
            make_context()


class TestRecordFailure:
    def test_rotation_context_failure_reaches_failure_log(self, settings):
        with patch("nexus_fleet.cli.utils.get_settings", return_value=settings), patch(
            "nexus_fleet.runtime.docker.shutil.which", return_value=None
        ):
            with pytest.raises(typer.Exit):
                make_context(caller="cron", record_failure=True)

        failures = settings.failure_log.read_text().splitlines()
        assert len(failures) == 1
        assert "Docker CLI not found" in failures[0]
        assert "ERROR: Docker CLI not found" in settings.rotate_log.read_text()

    def test_interactive_context_failure_is_not_logged(self, settings):
        with patch("nexus_fleet.cli.utils.get_settings", return_value=settings), patch(
            "nexus_fleet.runtime.docker.shutil.which", return_value=None
        ):
            with pytest.raises(typer.Exit):
                make_context()

        assert not settings.failure_log.exists()
