"""Tests for nexus_fleet.ops.rotation — rotate, check_rotation, deploy_rotation."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from nexus_fleet.ops import rotation as ops
from nexus_fleet.rotation.results import OverallStatus

S1 = "nexus-node-1"
S2 = "nexus-node-2"


@pytest.fixture
def healthy_host():
    with patch("nexus_fleet.rotation.preflight.available_memory_mb", return_value=8000), patch(
        "nexus_fleet.rotation.preflight.disk_usage_percent", return_value=20.0
    ):
        yield


class TestRotate:
    def test_cycle(self, ctx, fake_runtime, write_pool, healthy_host):
        write_pool({S1: ["a", "b"], S2: ["c", "d"]})
        fake_runtime.exit_identities.add("d")

        result = ops.rotate(ctx)

        assert result.success
        assert result.data.overall_status is OverallStatus.PARTIAL
        assert result.warnings == [f"{S2}: HEALTH_FAILED: Unit did not stay running"]

    def test_aborted_cycle_fails_envelope(self, ctx, write_pool):
        write_pool({S1: ["a", "b"]})
        with patch("nexus_fleet.rotation.preflight.available_memory_mb", return_value=100):
            result = ops.rotate(ctx)
        assert result.error.code == "CYCLE_ABORTED"
        assert "Insufficient memory" in result.error.message
        assert result.data.overall_status is OverallStatus.ERROR


class TestCheckRotation:
    def test_unhealthy_without_logs(self, ctx):
        result = ops.check_rotation(ctx)
        assert result.error.code == "ROTATION_UNHEALTHY"
        assert result.data.alerts

    def test_healthy_after_cycle(self, ctx, write_pool, healthy_host):
        write_pool({S1: ["a", "b"]})
        ops.rotate(ctx)
        assert ops.check_rotation(ctx).success


class TestDeployRotation:
    def _installer(self):
        installer = MagicMock()
        installer.install.return_value = True
        return installer

    def test_writes_template_from_running_units(self, ctx, fake_runtime, settings):
        fake_runtime.add_unit(S1, "id-live")
        fake_runtime.add_unit(S2, "id-stopped", status="exited")
        installer = self._installer()

        result = ops.deploy_rotation(ctx, installer=installer)

        assert result.success
        assert result.data.template_created is True
        assert json.loads(settings.pool_file.read_text()) == {S1: ["id-live", "PLACEHOLDER"]}
        assert json.loads(settings.state_file.read_text()) == {S1: 0}
        assert "PLACEHOLDER" in result.warnings[0]
        entries = installer.install.call_args[0][0]
        assert len(entries) == 3

    def test_existing_pool_kept(self, ctx, write_pool, write_state, settings):
        write_pool({S1: ["a", "b"], S2: ["c", "d"]})
        write_state({S1: 1})

        result = ops.deploy_rotation(ctx, installer=self._installer())

        assert result.data.template_created is False
        assert result.data.state_added == [S2]
        assert json.loads(settings.state_file.read_text()) == {S1: 1, S2: 0}
        assert result.warnings == []

    def test_nothing_running(self, ctx):
        result = ops.deploy_rotation(ctx, installer=self._installer())
        assert result.error.code == "NO_RUNNING_UNITS"

    def test_corrupt_pool(self, ctx, settings):
        settings.pool_file.write_text("{nope")
        result = ops.deploy_rotation(ctx, installer=self._installer())
        assert result.error.code == "ConfigError"
