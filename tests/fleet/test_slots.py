"""Tests for nexus_fleet.fleet.slots."""

from pathlib import Path

import pytest

from nexus_fleet.fleet.slots import (
    display_label,
    first_free_slot,
    log_path,
    mask_identity,
    resolve_slot,
    slot_number,
    slot_suffix,
)

PREFIX = "nexus-node-"


def test_suffix_and_number():
    assert slot_suffix("nexus-node-12") == "12"
    assert slot_number("nexus-node-12", PREFIX) == 12
    assert slot_number("other-3", PREFIX) is None
    assert slot_number("nexus-node-x", PREFIX) is None


def test_display_label():
    assert display_label("nexus-node-3", PREFIX) == "nexus-3"


def test_log_path():
    assert log_path(Path("/var/log/nexus"), "nexus-node-4") == Path("/var/log/nexus/nexus-4.log")


@pytest.mark.parametrize(
    ("identity", "expected"),
    [("0123456789abcdef", "012345****"), ("abc", "abc****"), ("", "<none>"), (None, "<none>")],
)
def test_mask_identity(identity, expected):
    assert mask_identity(identity) == expected


class TestFirstFreeSlot:
    def test_empty_fleet(self):
        assert first_free_slot([], PREFIX) == "nexus-node-1"

    def test_fills_gap(self):
        assert first_free_slot(["nexus-node-1", "nexus-node-3"], PREFIX) == "nexus-node-2"

    def test_appends(self):
        assert first_free_slot(["nexus-node-1", "nexus-node-2"], PREFIX) == "nexus-node-3"


def test_resolve_slot():
    assert resolve_slot("2", PREFIX) == "nexus-node-2"
    assert resolve_slot(" nexus-node-7 ", PREFIX) == "nexus-node-7"
