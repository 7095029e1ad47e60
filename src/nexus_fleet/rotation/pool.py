"""Identity pool store.

The pool file is a JSON object mapping slot name to an ordered list of
identities::

    {
      "nexus-node-1": ["id-a", "id-b", "id-c"],
      "nexus-node-2": ["id-d", "PLACEHOLDER"]
    }

It is edited by hand and only ever read by the rotation engine. The
placeholder value marks an unfilled entry and is not a real identity.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import StrictStr, TypeAdapter, ValidationError

from nexus_fleet.core.errors import ConfigError
from nexus_fleet.core.logging import get_logger

logger = get_logger(__name__)

IdentityPool = dict[str, list[StrictStr]]

_POOL_ADAPTER: TypeAdapter[dict[str, list[str]]] = TypeAdapter(IdentityPool)


def real_identities(identities: list[str], placeholder: str) -> list[str]:
    """Pool entries that are not the placeholder, in pool order."""
    return [identity for identity in identities if identity != placeholder]


class IdentityPoolStore:
    """Reads the identity pool file."""

    def __init__(self, path: Path, placeholder: str = "PLACEHOLDER") -> None:
        self.path = path
        self.placeholder = placeholder

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> dict[str, list[str]]:
        """Parse and validate the pool file.

        Raises:
            ConfigError: The file is missing, unreadable, not valid JSON, or not an object
                of slot name to list of strings.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise ConfigError(f"Identity pool file not found: {self.path}", cause=exc).with_context(
                path=str(self.path)
            ) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(f"Cannot read identity pool: {exc}", cause=exc).with_context(
                path=str(self.path)
            ) from exc

        try:
            pool = _POOL_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            raise ConfigError(
                f"Identity pool is not a JSON object of slot -> list of strings: "
                f"{exc.error_count()} error(s)",
                cause=exc,
            ).with_context(path=str(self.path)) from exc
        return pool

    def eligible(self, pool: dict[str, list[str]]) -> dict[str, list[str]]:
        """Slots with at least two real identities, mapped to those identities."""
        result = {}
        for slot, identities in pool.items():
            real = real_identities(identities, self.placeholder)
            if len(real) >= 2:
                result[slot] = real
        return result

    def write_template(self, slots: dict[str, str | None]) -> bool:
        """Seed a pool file from live slots: current identity, then placeholder.

        Never overwrites an existing file. Returns whether a file was written.
        """
        if self.exists():
            logger.info("pool.template_skipped", path=str(self.path))
            return False
        template = {
            slot: [identity, self.placeholder] if identity else [self.placeholder]
            for slot, identity in sorted(slots.items())
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(template, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        logger.info("pool.template_written", path=str(self.path), slots=len(template))
        return True
