"""
Shared pytest fixtures for nexus-fleet tests.

This module provides:
- ``FakeRuntime``: an in-memory stand-in for :class:`DockerRuntime`
- ``settings``: :class:`FleetSettings` rooted in ``tmp_path`` with zero delays
- ``ctx``: a :class:`FleetContext` around the fake runtime
- ``make_engine``: a rotation engine with controllable preflight probes

No Docker daemon is required by any test.
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
import structlog

# Ensure nexus_fleet package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from nexus_fleet.core.errors import RuntimeCommandError
from nexus_fleet.core.settings import FleetSettings
from nexus_fleet.ops.context import FleetContext
from nexus_fleet.rotation.engine import RotationEngine
from nexus_fleet.rotation.lock import RunLock
from nexus_fleet.rotation.oplog import OperationalLog
from nexus_fleet.rotation.pool import IdentityPoolStore
from nexus_fleet.rotation.preflight import Preflight
from nexus_fleet.rotation.state import RotationStateStore
from nexus_fleet.runtime.units import UnitSpec, UnitStats


@dataclass
class FakeUnit:
    name: str
    env: dict[str, str]
    memory: int
    status: str = "running"
    labels: dict[str, str] = field(default_factory=dict)


class FakeRuntime:
    """In-memory container runtime.

    Failure injection:
        fail_remove: names whose removal raises RuntimeCommandError
        fail_run: name -> stderr returned when creating that unit
        exit_identities: identities whose unit exits right after starting
        status_sequence: name -> statuses returned by successive status() calls
    """

    def __init__(self) -> None:
        self.units: dict[str, FakeUnit] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_remove: set[str] = set()
        self.fail_run: dict[str, str] = {}
        self.exit_identities: set[str] = set()
        self.status_sequence: dict[str, list[str]] = {}
        self.responsive = True
        self.log_output = "line 1\nline 2\n"
        self.built: list[tuple[str, Path]] = []

    # -- helpers for tests -------------------------------------------------

    def add_unit(self, name: str, identity: str | None = None, memory: int = 0, status: str = "running") -> None:
        env = {"NODE_ID": identity} if identity is not None else {}
        self.units[name] = FakeUnit(name=name, env=env, memory=memory, status=status)

    def identity_of(self, name: str) -> str | None:
        unit = self.units.get(name)
        return unit.env.get("NODE_ID") if unit else None

    def call_names(self, op: str) -> list[str]:
        return [name for kind, name in self.calls if kind == op]

    # -- DockerRuntime interface -------------------------------------------

    def ping(self) -> bool:
        return self.responsive

    def run_unit(self, spec: UnitSpec) -> str:
        self.calls.append(("run", spec.name))
        if spec.name in self.fail_run:
            stderr = self.fail_run[spec.name]
            raise RuntimeCommandError(f"Docker command failed (exit 125): run\n{stderr}", returncode=125, stderr=stderr)
        if spec.name in self.units:
            stderr = f'Conflict. The container name "/{spec.name}" is already in use'
            raise RuntimeCommandError(stderr, returncode=125, stderr=stderr)
        status = "exited" if spec.env.get("NODE_ID") in self.exit_identities else "running"
        self.units[spec.name] = FakeUnit(
            name=spec.name,
            env=dict(spec.env),
            memory=spec.profile.memory.bytes,
            status=status,
            labels=dict(spec.labels),
        )
        return f"{abs(hash(spec.name)):012d}"[:12]

    def remove(self, name: str) -> bool:
        self.calls.append(("remove", name))
        if name in self.fail_remove:
            raise RuntimeCommandError(f"Failed to remove {name}: device or resource busy", returncode=1)
        return self.units.pop(name, None) is not None

    def inspect(self, name: str) -> dict[str, Any] | None:
        unit = self.units.get(name)
        if unit is None:
            return None
        return {
            "Name": f"/{name}",
            "Config": {"Env": [f"{k}={v}" for k, v in unit.env.items()] + ["PATH=/usr/bin"]},
            "HostConfig": {"Memory": unit.memory},
            "State": {"Status": unit.status},
        }

    def status(self, name: str) -> str:
        sequence = self.status_sequence.get(name)
        if sequence:
            return sequence.pop(0)
        unit = self.units.get(name)
        return unit.status if unit else "not_found"

    def list_names(self, prefix: str, *, include_stopped: bool = True) -> list[str]:
        names = [
            n for n, u in self.units.items()
            if n.startswith(prefix) and (include_stopped or u.status == "running")
        ]
        return sorted(names)

    def stats(self, names: list[str]) -> list[UnitStats]:
        return [
            UnitStats(name=n, memory_usage=512 * 1024**2, memory_limit=self.units[n].memory, memory_percent=10.0)
            for n in names
            if n in self.units
        ]

    def logs(self, name: str, tail: int = 20) -> str:
        return self.log_output

    def build(self, tag: str, context_dir: Path) -> None:
        self.built.append((tag, context_dir))


def no_sleep(seconds: float) -> None:
    return None


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Each test starts from structlog defaults (stdout at call time)."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def settings(tmp_path: Path) -> FleetSettings:
    return FleetSettings(
        _env_file=None,
        log_dir=tmp_path / "logs",
        pool_file=tmp_path / "nexus-id-config.json",
        state_file=tmp_path / "nexus-id-state.json",
        build_dir=tmp_path / "build",
        disk_path=tmp_path,
        health_timeout_seconds=0.0,
        health_confirm_seconds=0.0,
        health_poll_seconds=0.0,
        settle_seconds=0.0,
        inter_slot_seconds=0.0,
    )


@pytest.fixture
def ctx(settings: FleetSettings, fake_runtime: FakeRuntime) -> FleetContext:
    return FleetContext(settings=settings, runtime=fake_runtime, sleep=no_sleep)


@pytest.fixture
def write_pool(settings: FleetSettings):
    def _write(pool: dict[str, Any]) -> Path:
        settings.pool_file.write_text(json.dumps(pool), encoding="utf-8")
        return settings.pool_file

    return _write


@pytest.fixture
def write_state(settings: FleetSettings):
    def _write(state: dict[str, Any]) -> Path:
        settings.state_file.write_text(json.dumps(state), encoding="utf-8")
        return settings.state_file

    return _write


@pytest.fixture
def make_engine(ctx: FleetContext, fake_runtime: FakeRuntime):
    """Build a RotationEngine over the fake runtime.

    ``free_mb`` and ``disk_percent`` feed the preflight probes.
    """

    def _make(free_mb: int = 8000, disk_percent: float = 40.0, lock: bool = True) -> RotationEngine:
        settings = ctx.settings
        pool_store = IdentityPoolStore(settings.pool_file, settings.placeholder)
        return RotationEngine(
            settings,
            ctx.supervisor,
            pool_store,
            RotationStateStore(settings.state_file),
            OperationalLog(settings.rotate_log, settings.failure_log),
            Preflight(
                settings,
                fake_runtime.ping,
                pool_store,
                memory_probe=lambda: free_mb,
                disk_probe=lambda path: disk_percent,
            ),
            lock=RunLock(settings.lock_path) if lock else None,
            sleep=no_sleep,
        )

    return _make
