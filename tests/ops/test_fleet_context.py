"""Tests for nexus_fleet.ops.context — FleetContext."""

from unittest.mock import patch

from nexus_fleet.ops.context import FleetContext
from nexus_fleet.rotation.engine import RotationEngine
from nexus_fleet.runtime.docker import DockerRuntime


class TestFleetContext:
    def test_from_settings_uses_docker_cli(self, settings):
        with patch("nexus_fleet.runtime.docker.shutil.which", return_value="/usr/bin/docker"):
            ctx = FleetContext.from_settings(settings, caller="cron")
        assert isinstance(ctx.runtime, DockerRuntime)
        assert ctx.runtime.timeout == settings.docker_timeout_seconds
        assert ctx.caller == "cron"
        assert ctx.supervisor.runtime is ctx.runtime

    def test_stores_follow_settings(self, ctx, settings):
        assert ctx.pool_store.path == settings.pool_file
        assert ctx.pool_store.placeholder == settings.placeholder
        assert ctx.state_store.path == settings.state_file
        assert ctx.oplog.failure_log == settings.failure_log

    def test_engine_takes_run_lock(self, ctx, settings):
        engine = ctx.engine()
        assert isinstance(engine, RotationEngine)
        assert engine.lock.path == settings.lock_path

    def test_monitor_age_limit(self, ctx, settings):
        assert ctx.monitor().max_log_age_seconds == settings.monitor_max_log_age_seconds
