"""Execution unit specifications and runtime-reported statistics.

``UnitSpec`` carries everything needed to start one prover-node container.
It renders to a structured ``docker run`` argument list; values are never
interpolated into a shell string, so a node-id or label containing shell
metacharacters reaches the container verbatim.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from nexus_fleet.core.resources import ResourceProfile


@dataclass(frozen=True)
class Mount:
    """Bind mount of a host path into the unit."""

    source: str
    target: str

    def to_arg(self) -> str:
        return f"{self.source}:{self.target}"


@dataclass(frozen=True)
class UnitSpec:
    """Specification for one execution unit (container)."""

    name: str
    """Container name; equals the slot name."""

    image: str
    """Image reference with tag."""

    profile: ResourceProfile
    """Memory ceiling applied by the runtime."""

    env: dict[str, str] = field(default_factory=dict)
    """Environment bindings (``NODE_ID``, ``NEXUS_LOG``, ``SCREEN_NAME``)."""

    mounts: tuple[Mount, ...] = ()
    """Bind mounts (log file and log directory)."""

    labels: dict[str, str] = field(default_factory=dict)
    """Runtime labels used to recognise managed units."""

    def run_args(self) -> list[str]:
        """Build the ``docker run`` argument list (without the binary)."""
        args = ["run", "--detach", "--name", self.name]
        args.extend(self.profile.runtime_args())
        for key, value in self.env.items():
            args.extend(["--env", f"{key}={value}"])
        for mount in self.mounts:
            args.extend(["--volume", mount.to_arg()])
        for key, value in self.labels.items():
            args.extend(["--label", f"{key}={value}"])
        args.append(self.image)
        return args


_SIZE_UNITS = {
    "b": 1,
    "kb": 1000,
    "mb": 1000**2,
    "gb": 1000**3,
    "tb": 1000**4,
    "kib": 1024,
    "mib": 1024**2,
    "gib": 1024**3,
    "tib": 1024**4,
}

_SIZE_PATTERN = re.compile(r"^\s*([\d.]+)\s*([a-zA-Z]*)\s*$")


def parse_size(text: str) -> int:
    """Convert a runtime size string (``1.5GiB``, ``512MB``, ``0B``) to bytes."""
    match = _SIZE_PATTERN.match(text or "")
    if match is None:
        return 0
    amount, unit = match.groups()
    return int(float(amount) * _SIZE_UNITS.get(unit.lower() or "b", 1))


def parse_percent(text: str) -> float:
    try:
        return float((text or "").strip().rstrip("%") or 0.0)
    except ValueError:
        return 0.0


@dataclass
class UnitStats:
    """Live resource usage of one unit as reported by ``docker stats``."""

    name: str
    memory_usage: int = 0
    memory_limit: int = 0
    memory_percent: float = 0.0
    cpu_percent: float = 0.0

    @classmethod
    def from_stats_row(cls, row: dict[str, Any]) -> UnitStats:
        """Build from one ``docker stats --format '{{json .}}'`` row."""
        usage, _, limit = str(row.get("MemUsage", "")).partition("/")
        return cls(
            name=str(row.get("Name", "")),
            memory_usage=parse_size(usage),
            memory_limit=parse_size(limit),
            memory_percent=parse_percent(str(row.get("MemPerc", ""))),
            cpu_percent=parse_percent(str(row.get("CPUPerc", ""))),
        )
