"""Slot naming and the worker supervisor."""

from nexus_fleet.fleet.slots import (
    display_label,
    first_free_slot,
    log_path,
    mask_identity,
    resolve_slot,
    slot_name,
)
from nexus_fleet.fleet.supervisor import WorkerSupervisor

__all__ = [
    "WorkerSupervisor",
    "display_label",
    "first_free_slot",
    "log_path",
    "mask_identity",
    "resolve_slot",
    "slot_name",
]
