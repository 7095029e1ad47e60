"""Tests for nexus_fleet.rotation.schedule — cron entries and installer."""

from unittest.mock import MagicMock

import pytest

from nexus_fleet.core.errors import RuntimeCommandError
from nexus_fleet.rotation.schedule import CRON_MARKER, CronInstaller, cron_entries, merge_crontab


def _proc(returncode=0, stdout="", stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestEntries:
    def test_three_tagged_entries(self, settings):
        entries = cron_entries(settings, command="/usr/local/bin/nexus-fleet")
        assert len(entries) == 3
        assert all(line.endswith(CRON_MARKER) for line in entries)
        assert entries[0].startswith("0 */2 * * * /usr/local/bin/nexus-fleet rotate >> ")
        assert str(settings.rotate_output) in entries[0]
        assert str(settings.rotate_output) in entries[1]
        assert entries[1].startswith("@reboot sleep 120 && /usr/local/bin/nexus-fleet rotate")
        assert entries[2].startswith("*/30 * * * * /usr/local/bin/nexus-fleet monitor >> ")
        assert str(settings.monitor_log) in entries[2]

    def test_rotation_output_kept_out_of_operational_log(self, settings):
        entries = cron_entries(settings, command="nexus-fleet")
        assert settings.rotate_output != settings.rotate_log
        assert not any(str(settings.rotate_log) in line for line in entries)


class TestMerge:
    def test_keeps_foreign_lines(self):
        existing = "MAILTO=ops@example.com\n15 3 * * * /usr/bin/backup\n"
        merged = merge_crontab(existing, ["A # nexus-fleet"])
        assert merged == "MAILTO=ops@example.com\n15 3 * * * /usr/bin/backup\nA # nexus-fleet\n"

    def test_replaces_previous_install(self):
        existing = "15 3 * * * /usr/bin/backup\nOLD # nexus-fleet\n\n"
        assert merge_crontab(existing, ["NEW # nexus-fleet"]) == "15 3 * * * /usr/bin/backup\nNEW # nexus-fleet\n"

    def test_idempotent(self):
        once = merge_crontab("", ["A # nexus-fleet", "B # nexus-fleet"])
        assert merge_crontab(once, ["A # nexus-fleet", "B # nexus-fleet"]) == once


class TestInstaller:
    def test_install_into_empty_crontab(self):
        run = MagicMock(side_effect=[_proc(1, stderr="no crontab for root"), _proc(0)])
        assert CronInstaller(run=run).install(["A # nexus-fleet"]) is True
        write_call = run.call_args_list[1]
        assert write_call.args[0] == ["crontab", "-"]
        assert write_call.kwargs["input"] == "A # nexus-fleet\n"

    def test_unchanged(self):
        run = MagicMock(return_value=_proc(0, stdout="A # nexus-fleet\n"))
        assert CronInstaller(run=run).install(["A # nexus-fleet"]) is False
        assert run.call_count == 1

    def test_read_failure(self):
        run = MagicMock(return_value=_proc(1, stderr="crontab: permission denied"))
        with pytest.raises(RuntimeCommandError):
            CronInstaller(run=run).read()

    def test_write_failure(self):
        run = MagicMock(side_effect=[_proc(0, stdout=""), _proc(1, stderr="bad minute")])
        with pytest.raises(RuntimeCommandError):
            CronInstaller(run=run).install(["A # nexus-fleet"])
