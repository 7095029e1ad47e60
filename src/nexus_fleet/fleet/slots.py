"""Slot naming conventions.

A slot is a named worker position such as ``nexus-node-3``. Everything else
about the slot (its log file, its display label, its numeric suffix) is
derived from the name::

    >>> slot_suffix("nexus-node-3")
    '3'
    >>> display_label("nexus-node-3", "nexus-node-")
    'nexus-3'
    >>> mask_identity("0123456789abcdef")
    '012345****'
"""

from __future__ import annotations

from pathlib import Path

MASK_VISIBLE = 6


def slot_name(prefix: str, number: int) -> str:
    return f"{prefix}{number}"


def slot_suffix(slot: str) -> str:
    """Text after the last ``-`` of the slot name (the whole name if none)."""
    return slot.rsplit("-", 1)[-1]


def slot_number(slot: str, prefix: str) -> int | None:
    """Numeric position of a slot, or None for names outside the scheme."""
    if not slot.startswith(prefix):
        return None
    rest = slot[len(prefix):]
    return int(rest) if rest.isdigit() else None


def display_label(slot: str, prefix: str) -> str:
    """Screen/session label: ``nexus-node-3`` becomes ``nexus-3``."""
    return slot.replace(prefix, "nexus-")


def log_path(log_dir: Path, slot: str) -> Path:
    return log_dir / f"nexus-{slot_suffix(slot)}.log"


def mask_identity(identity: str | None) -> str:
    """Log-safe form of an identity."""
    if not identity:
        return "<none>"
    return identity[:MASK_VISIBLE] + "****"


def first_free_slot(existing: list[str], prefix: str) -> str:
    """Lowest-numbered slot name (from 1) not already in *existing*."""
    taken = {slot_number(name, prefix) for name in existing}
    number = 1
    while number in taken:
        number += 1
    return slot_name(prefix, number)


def resolve_slot(value: str, prefix: str) -> str:
    """Accept a bare slot number (``2``) or a full slot name."""
    value = value.strip()
    return slot_name(prefix, int(value)) if value.isdigit() else value
