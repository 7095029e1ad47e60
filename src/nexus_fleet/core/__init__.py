"""Core primitives: settings, structured errors, logging, resource profiles."""

from nexus_fleet.core.errors import (
    ConfigError,
    CreateError,
    ErrorCategory,
    FleetError,
    ResourceError,
    RotationLockedError,
    RuntimeCommandError,
    RuntimeUnavailableError,
    SlotCreateError,
    SlotDestroyError,
    SlotError,
    SlotHealthError,
    StateCommitError,
)
from nexus_fleet.core.resources import MemoryLimit, ResourceProfile
from nexus_fleet.core.settings import FleetSettings, get_settings

__all__ = [
    "ConfigError",
    "CreateError",
    "ErrorCategory",
    "FleetError",
    "FleetSettings",
    "MemoryLimit",
    "ResourceError",
    "ResourceProfile",
    "RotationLockedError",
    "RuntimeCommandError",
    "RuntimeUnavailableError",
    "SlotCreateError",
    "SlotDestroyError",
    "SlotError",
    "SlotHealthError",
    "StateCommitError",
    "get_settings",
]
