"""Rotation state store.

Maps slot name to the index of the identity currently assigned to it::

    {"nexus-node-1": 2, "nexus-node-2": 0}

A missing file is an empty mapping. Writes go to a temporary file in the
same directory which is fsynced and renamed over the target, so a crash
mid-write leaves either the old or the new document, never a torn one.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Annotated

from pydantic import Field, TypeAdapter, ValidationError

from nexus_fleet.core.errors import ConfigError, StateCommitError
from nexus_fleet.core.logging import get_logger

logger = get_logger(__name__)

_STATE_ADAPTER: TypeAdapter[dict[str, int]] = TypeAdapter(
    dict[str, Annotated[int, Field(strict=True, ge=0)]]
)


class RotationStateStore:
    """Durable slot -> index mapping."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> dict[str, int]:
        """Read the mapping; ``{}`` if the file does not exist.

        Raises:
            ConfigError: The file exists but is unreadable or not a JSON object of slot name
                to non-negative integer.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Cannot read rotation state: {exc}", cause=exc).with_context(
                path=str(self.path)
            ) from exc

        if not raw.strip():
            return {}
        try:
            return _STATE_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            raise ConfigError(
                f"Rotation state is corrupt: {exc.error_count()} error(s)",
                cause=exc,
            ).with_context(path=str(self.path)) from exc

    def save(self, mapping: dict[str, int]) -> None:
        """Atomically replace the state file with *mapping*."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        serialized = json.dumps(dict(sorted(mapping.items())), indent=2) + "\n"
        fd, temp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(serialized)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_path, self.path)
        finally:
            if os.path.exists(temp_path):
                os.remove(temp_path)

    def get(self, slot: str) -> int:
        return self.load().get(slot, 0)

    def commit(self, slot: str, index: int) -> None:
        """Persist *index* for *slot*, leaving other slots unchanged.

        Raises:
            StateCommitError: The state could not be read back or written.
        """
        try:
            mapping = self.load()
            mapping[slot] = index
            self.save(mapping)
        except (ConfigError, OSError, TypeError, ValueError) as exc:
            raise StateCommitError(f"Failed to persist index {index} for {slot}: {exc}", cause=exc).with_context(
                slot=slot, path=str(self.path)
            ) from exc
        logger.debug("state.committed", slot=slot, index=index)

    def ensure(self, slots: list[str]) -> list[str]:
        """Add missing *slots* at index 0. Returns the slots that were added."""
        mapping = self.load()
        added = [slot for slot in slots if slot not in mapping]
        if added or not self.path.exists():
            for slot in added:
                mapping[slot] = 0
            self.save(mapping)
            logger.info("state.initialised", path=str(self.path), added=added)
        return added
