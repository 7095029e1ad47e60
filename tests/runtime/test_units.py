"""Tests for nexus_fleet.runtime.units."""

import pytest

from nexus_fleet.core.resources import ResourceProfile
from nexus_fleet.runtime.units import Mount, UnitSpec, UnitStats, parse_percent, parse_size


class TestUnitSpec:
    def test_run_args_order(self):
        spec = UnitSpec(
            name="nexus-node-2",
            image="nexus-node:latest",
            profile=ResourceProfile.of("6g"),
            env={"NODE_ID": "abc", "SCREEN_NAME": "nexus-2"},
            mounts=(Mount("/var/log/nexus/nexus-2.log", "/var/log/nexus/nexus-2.log"),),
            labels={"io.nexus.fleet.slot": "nexus-node-2"},
        )
        assert spec.run_args() == [
            "run", "--detach", "--name", "nexus-node-2",
            "--memory", "6g", "--memory-swap", "6g", "--oom-kill-disable=false",
            "--env", "NODE_ID=abc",
            "--env", "SCREEN_NAME=nexus-2",
            "--volume", "/var/log/nexus/nexus-2.log:/var/log/nexus/nexus-2.log",
            "--label", "io.nexus.fleet.slot=nexus-node-2",
            "nexus-node:latest",
        ]

    def test_unlimited_profile_has_no_memory_flags(self):
        spec = UnitSpec(name="n", image="img", profile=ResourceProfile.of("unlimited"))
        assert spec.run_args() == ["run", "--detach", "--name", "n", "img"]

    def test_metacharacters_kept_in_one_argument(self):
        spec = UnitSpec(name="n", image="img", profile=ResourceProfile.of("1g"), env={"NODE_ID": "a; b $(c)"})
        assert "NODE_ID=a; b $(c)" in spec.run_args()


class TestParsing:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("0B", 0),
            ("512MB", 512 * 1000**2),
            ("512MiB", 512 * 1024**2),
            ("1.5GiB", int(1.5 * 1024**3)),
            ("", 0),
            ("garbage!", 0),
        ],
    )
    def test_parse_size(self, text, expected):
        assert parse_size(text) == expected

    def test_parse_percent(self):
        assert parse_percent("12.50%") == 12.5
        assert parse_percent("--") == 0.0
        assert parse_percent("") == 0.0

    def test_stats_row(self):
        stats = UnitStats.from_stats_row(
            {"Name": "nexus-node-1", "MemUsage": "100MiB / 1GiB", "MemPerc": "9.77%", "CPUPerc": "0.50%"}
        )
        assert stats.name == "nexus-node-1"
        assert stats.memory_usage == 100 * 1024**2
        assert stats.memory_limit == 1024**3
        assert stats.memory_percent == 9.77
        assert stats.cpu_percent == 0.5
