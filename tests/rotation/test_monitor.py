"""Tests for nexus_fleet.rotation.monitor — RotationMonitor."""

import os

import pytest

from nexus_fleet.rotation.engine import CYCLE_COMPLETE_MARKER
from nexus_fleet.rotation.monitor import RotationMonitor
from nexus_fleet.rotation.oplog import OperationalLog


@pytest.fixture
def oplog(tmp_path):
    return OperationalLog(tmp_path / "nexus-rotate.log", tmp_path / "rotation-failure.log")


def _monitor(oplog, now=None):
    mtime = oplog.rotate_log.stat().st_mtime if now is None and oplog.rotate_log.exists() else 0
    return RotationMonitor(oplog, max_log_age_seconds=10800, clock=lambda: now if now is not None else mtime + 60)


def test_missing_rotate_log(oplog):
    report = _monitor(oplog, now=0).check()
    assert not report.healthy
    assert "does not exist" in report.alerts[0]


def test_healthy(oplog):
    oplog.info(f"{CYCLE_COMPLETE_MARKER}: 2/2 rotated, 0 failed, 0 skipped in 40s")
    report = _monitor(oplog).check()
    assert report.healthy


def test_no_completed_cycle(oplog):
    oplog.info("Rotation cycle starting")
    report = _monitor(oplog).check()
    assert report.alerts == ["No completed rotation cycle found in the rotation log"]


def test_stale_log(oplog):
    oplog.info(f"{CYCLE_COMPLETE_MARKER}: 1/1 rotated, 0 failed, 0 skipped in 12s")
    mtime = oplog.rotate_log.stat().st_mtime
    report = _monitor(oplog, now=mtime + 4 * 3600).check()
    assert report.alerts == ["Rotation log not updated for more than 3 hours"]


def test_failures_reported_then_cleared(oplog):
    for n in range(5):
        oplog.failure(f"nexus-node-{n}: HEALTH_FAILED: exited")
    oplog.info(f"{CYCLE_COMPLETE_MARKER}: 0/5 rotated, 5 failed, 0 skipped in 90s")

    report = _monitor(oplog).check()

    assert len(report.alerts) == 1
    alert = report.alerts[0]
    assert "nexus-node-4" in alert and "nexus-node-2" in alert
    assert "nexus-node-1" not in alert
    assert oplog.failure_log.read_text() == ""
    assert _monitor(oplog).check().healthy


def test_empty_failure_log_is_fine(oplog):
    oplog.failure_log.write_text("")
    oplog.info(CYCLE_COMPLETE_MARKER)
    os.utime(oplog.rotate_log)
    assert _monitor(oplog).check().healthy
