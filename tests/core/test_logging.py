"""Tests for nexus_fleet.core.logging — structlog configuration."""

import json

from nexus_fleet.core.logging import LogContext, configure_logging, get_logger


class TestConfigureLogging:
    def test_json_output_carries_fields(self, capsys):
        configure_logging(level="INFO", json_format=True)
        get_logger("nexus_fleet.test").info("slot.committed", slot="nexus-node-1", index=2)

        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "slot.committed"
        assert record["slot"] == "nexus-node-1"
        assert record["index"] == 2
        assert record["logger"] == "nexus_fleet.test"
        assert record["service"] == "nexus-fleet"
        assert record["level"] == "info"

    def test_level_filters(self, capsys):
        configure_logging(level="WARNING", json_format=True)
        get_logger("nexus_fleet.test").info("hidden")
        assert "hidden" not in capsys.readouterr().err

    def test_log_context_binds_and_unbinds(self, capsys):
        configure_logging(level="INFO", json_format=True)
        logger = get_logger("nexus_fleet.test")
        with LogContext(run_id="abc123"):
            logger.info("inside")
        logger.info("outside")

        lines = [json.loads(l) for l in capsys.readouterr().err.strip().splitlines()]
        assert lines[-2]["run_id"] == "abc123"
        assert "run_id" not in lines[-1]


class TestModuleLoggers:
    def test_module_logger_names_its_module(self, capsys):
        from nexus_fleet.rotation import pool

        configure_logging(level="INFO", json_format=True)
        pool.logger.info("pool.loaded", identities=3)

        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["event"] == "pool.loaded"
        assert record["logger"] == "nexus_fleet.rotation.pool"

    def test_unnamed_logger_has_no_logger_field(self, capsys):
        configure_logging(level="INFO", json_format=True)
        get_logger().info("anonymous")

        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert "logger" not in record
