"""Resource profile value objects.

A slot's memory ceiling travels through the system as a :class:`MemoryLimit`
rather than a formatted string. Parsing happens once at the edge (settings,
CLI option, runtime inspect output) and conversion back to a runtime
argument is explicit::

    >>> MemoryLimit.parse("5g").bytes
    5368709120
    >>> MemoryLimit.from_runtime(5368709120).to_arg()
    '5g'
    >>> MemoryLimit.parse("unlimited").is_unlimited
    True
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_UNITS = {
    "": 1,
    "b": 1,
    "k": 1024,
    "m": 1024**2,
    "g": 1024**3,
    "t": 1024**4,
}

_PATTERN = re.compile(r"^\s*(\d+)\s*([bkmgt]?)(?:i?b)?\s*$", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class MemoryLimit:
    """A memory ceiling in bytes. ``bytes == 0`` means unlimited."""

    bytes: int = 0

    @classmethod
    def parse(cls, value: str | int) -> MemoryLimit:
        """Parse ``"5g"``, ``"512m"``, ``"1024k"``, ``"unlimited"`` or a byte count.

        Raises:
            ValueError: If the value is not a recognised quantity.
        """
        if isinstance(value, int):
            if value < 0:
                raise ValueError(f"Memory limit cannot be negative: {value}")
            return cls(bytes=value)

        text = value.strip().lower()
        if text in ("unlimited", "none", "0", "-1"):
            return cls.unlimited()

        match = _PATTERN.match(text)
        if match is None:
            raise ValueError(f"Unrecognised memory limit: {value!r}")
        amount, unit = match.groups()
        return cls(bytes=int(amount) * _UNITS[unit.lower()])

    @classmethod
    def from_runtime(cls, raw: int | None) -> MemoryLimit:
        """Build from the runtime's ``HostConfig.Memory`` (0 or missing = unlimited)."""
        if not raw or raw < 0:
            return cls.unlimited()
        return cls(bytes=int(raw))

    @classmethod
    def unlimited(cls) -> MemoryLimit:
        return cls(bytes=0)

    @property
    def is_unlimited(self) -> bool:
        return self.bytes == 0

    @property
    def megabytes(self) -> int:
        return self.bytes // _UNITS["m"]

    def to_arg(self) -> str:
        """Render in the largest whole unit the runtime accepts (``5g``, ``1536m``)."""
        if self.is_unlimited:
            return "unlimited"
        for suffix in ("t", "g", "m", "k"):
            size = _UNITS[suffix]
            if self.bytes % size == 0:
                return f"{self.bytes // size}{suffix}"
        return str(self.bytes)

    def __str__(self) -> str:
        return self.to_arg()


@dataclass(frozen=True, slots=True)
class ResourceProfile:
    """Resources applied to one execution unit.

    The swap ceiling always equals the memory ceiling (no extra swap) and
    the runtime's OOM killer stays enabled.
    """

    memory: MemoryLimit

    @classmethod
    def of(cls, memory: str | int | MemoryLimit) -> ResourceProfile:
        if isinstance(memory, MemoryLimit):
            return cls(memory=memory)
        return cls(memory=MemoryLimit.parse(memory))

    def runtime_args(self) -> list[str]:
        """Arguments for ``docker run``; empty when unlimited."""
        if self.memory.is_unlimited:
            return []
        value = self.memory.to_arg()
        return ["--memory", value, "--memory-swap", value, "--oom-kill-disable=false"]

    def __str__(self) -> str:
        return str(self.memory)


def format_bytes(value: float) -> str:
    """Human-readable byte size (``1.5GiB``)."""
    for unit in ("B", "KiB", "MiB", "GiB"):
        if abs(value) < 1024:
            return f"{value:.1f}{unit}" if unit != "B" else f"{int(value)}B"
        value /= 1024
    return f"{value:.1f}TiB"
