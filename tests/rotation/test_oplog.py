"""Tests for nexus_fleet.rotation.oplog — OperationalLog."""

from datetime import datetime

import pytest

from nexus_fleet.rotation.oplog import OperationalLog, format_line

NOW = datetime(2026, 3, 1, 14, 5, 9)


@pytest.fixture
def oplog(tmp_path):
    return OperationalLog(tmp_path / "logs" / "rotate.log", tmp_path / "logs" / "failure.log", now=lambda: NOW)


def test_format_line():
    assert format_line("hello", NOW) == "[2026-03-01 14:05:09] hello\n"


def test_info_only_in_rotate_log(oplog):
    oplog.info("Rotation cycle starting")
    assert oplog.rotate_log.read_text() == "[2026-03-01 14:05:09] Rotation cycle starting\n"
    assert not oplog.failure_log.exists()


def test_failure_in_both_logs(oplog):
    oplog.failure("nexus-node-1: CREATE_FAILED: boom")
    assert oplog.rotate_log.read_text().endswith("ERROR: nexus-node-1: CREATE_FAILED: boom\n")
    assert oplog.failure_log.read_text() == "[2026-03-01 14:05:09] nexus-node-1: CREATE_FAILED: boom\n"


def test_warning(oplog):
    oplog.warning("skipped")
    oplog.warning("ineligible", record_failure=True)
    assert oplog.rotate_log.read_text().count("WARNING:") == 2
    assert oplog.failure_log.read_text().strip().endswith("WARNING: ineligible")


def test_unwritable_log_does_not_raise(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    log = OperationalLog(blocker / "rotate.log", blocker / "failure.log", now=lambda: NOW)
    log.failure("still fine")
