"""Container runtime client.

Drives the ``docker`` CLI through ``subprocess`` with argument lists. No
``docker-py`` dependency: the CLI works the same against Docker Engine,
Podman's docker shim, and rootless setups.

Key Concepts:
    DockerRuntime: ``run_unit()``, ``remove()``, ``inspect()``,
        ``status()``, ``list_names()``, ``stats()``, ``logs()``,
        ``exec()``, ``build()``, ``ping()``.
    RuntimeUnavailableError: ``docker`` is not on PATH.
    RuntimeCommandError: a command exited non-zero or timed out. Carries
        the return code and the runtime's stderr.

Architecture Decisions:
    - Commands are lists; nothing is passed through a shell.
    - ``remove()`` treats "No such container" as success so callers get
      idempotent teardown without parsing stderr themselves.
    - ``inspect()`` returns the parsed JSON document; typed accessors live
      in :mod:`nexus_fleet.fleet.supervisor`.

Tags:
    container, docker, subprocess, runtime
"""

from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path
from typing import Any

from nexus_fleet.core.errors import ErrorContext, FleetError, RuntimeCommandError, RuntimeUnavailableError
from nexus_fleet.core.logging import get_logger
from nexus_fleet.runtime.units import UnitSpec, UnitStats

logger = get_logger(__name__)

_MISSING_MARKERS = ("no such container", "no such object")


class DockerRuntime:
    """Thin, typed wrapper around the ``docker`` CLI.

    Parameters
    ----------
    timeout
        Default per-command timeout in seconds.
    docker_cmd
        Explicit path to the CLI binary; discovered on PATH when omitted.

    Example::

        runtime = DockerRuntime()
        runtime.run_unit(spec)
        runtime.status("nexus-node-1")   # 'running'
        runtime.remove("nexus-node-1")
    """

    def __init__(self, timeout: int = 120, docker_cmd: str | None = None) -> None:
        self.timeout = timeout
        self._docker_cmd = docker_cmd or self._find_docker()

    # ------------------------------------------------------------------
    # Docker CLI discovery
    # ------------------------------------------------------------------

    @staticmethod
    def _find_docker() -> str:
        docker = shutil.which("docker")
        if docker is None:
            raise RuntimeUnavailableError(
                "Docker CLI not found on PATH. Install Docker Engine: "
                "https://docs.docker.com/engine/install/"
            )
        return docker

    @staticmethod
    def is_installed() -> bool:
        return shutil.which("docker") is not None

    def ping(self) -> bool:
        """Check that the daemon answers ``docker info``."""
        try:
            result = self._run_docker(["info"], check=False, timeout=15)
        except FleetError:
            return False
        return result.returncode == 0

    # ------------------------------------------------------------------
    # Unit lifecycle
    # ------------------------------------------------------------------

    def run_unit(self, spec: UnitSpec) -> str:
        """Start a detached unit. Returns the short container id."""
        result = self._run_docker(spec.run_args())
        container_id = result.stdout.strip()[:12]
        logger.info("unit.started", unit=spec.name, image=spec.image, container_id=container_id)
        return container_id

    def remove(self, name: str) -> bool:
        """Force-remove a unit.

        Returns ``True`` if a unit was removed and ``False`` if none existed.

        Raises:
            RuntimeCommandError: The runtime failed for another reason.
        """
        result = self._run_docker(["rm", "--force", name], check=False)
        if result.returncode == 0:
            removed = bool(result.stdout.strip())
            logger.debug("unit.removed", unit=name, existed=removed)
            return removed
        if _is_missing(result.stderr):
            return False
        raise RuntimeCommandError(
            f"Failed to remove {name} (exit {result.returncode}): {result.stderr.strip()}",
            returncode=result.returncode,
            stderr=result.stderr,
            context=ErrorContext(command=f"rm --force {name}"),
        )

    def inspect(self, name: str) -> dict[str, Any] | None:
        """Return the ``docker inspect`` document for a unit, or None if absent."""
        result = self._run_docker(["inspect", "--type", "container", name], check=False)
        if result.returncode != 0:
            if _is_missing(result.stderr):
                return None
            raise RuntimeCommandError(
                f"Failed to inspect {name}: {result.stderr.strip()}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        try:
            documents = json.loads(result.stdout or "[]")
        except json.JSONDecodeError as exc:
            raise RuntimeCommandError(f"Unparsable inspect output for {name}", cause=exc) from exc
        return documents[0] if documents else None

    def status(self, name: str) -> str:
        """Unit state (``running``, ``exited``, ``created``, ...) or ``not_found``."""
        document = self.inspect(name)
        if document is None:
            return "not_found"
        return str(document.get("State", {}).get("Status", "unknown"))

    def list_names(self, prefix: str, *, include_stopped: bool = True) -> list[str]:
        """Names of units whose name starts with *prefix*, sorted naturally."""
        cmd = ["ps", "--filter", f"name=^{prefix}", "--format", "{{.Names}}"]
        if include_stopped:
            cmd.insert(1, "--all")
        result = self._run_docker(cmd)
        names = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        return sorted((n for n in names if n.startswith(prefix)), key=_natural_key)

    def stats(self, names: list[str]) -> list[UnitStats]:
        """One-shot resource usage for the given units."""
        if not names:
            return []
        result = self._run_docker(
            ["stats", "--no-stream", "--format", "{{json .}}", *names],
            check=False,
        )
        stats = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            try:
                stats.append(UnitStats.from_stats_row(json.loads(line)))
            except json.JSONDecodeError:
                logger.warning("stats.unparsable", line=line)
        return stats

    def logs(self, name: str, tail: int = 20) -> str:
        """Last *tail* lines of a unit's stdout/stderr."""
        result = self._run_docker(["logs", "--tail", str(tail), name], check=False)
        return result.stdout + result.stderr

    def exec(self, name: str, argv: list[str]) -> subprocess.CompletedProcess[str]:
        return self._run_docker(["exec", name, *argv], check=False)

    def build(self, tag: str, context_dir: Path) -> None:
        """Build an image from *context_dir*. No timeout: builds download toolchains."""
        self._run_docker(["build", "--tag", tag, str(context_dir)], timeout=None)
        logger.info("image.built", image=tag, context=str(context_dir))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _run_docker(
        self,
        args: list[str],
        check: bool = True,
        timeout: int | None = -1,
    ) -> subprocess.CompletedProcess[str]:
        """Run a docker CLI command.

        ``timeout=-1`` means the client default; ``None`` means no timeout.
        """
        cmd = [self._docker_cmd, *args]
        effective = self.timeout if timeout == -1 else timeout
        logger.debug("docker.exec", cmd=args)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=effective,
            )
        except subprocess.TimeoutExpired as exc:
            raise RuntimeCommandError(
                f"Docker command timed out after {effective}s: {' '.join(args)}",
                context=ErrorContext(command=" ".join(args)),
                cause=exc,
            ) from exc
        except OSError as exc:
            raise RuntimeUnavailableError(f"Cannot execute {self._docker_cmd}: {exc}", cause=exc) from exc

        if check and result.returncode != 0:
            raise RuntimeCommandError(
                f"Docker command failed (exit {result.returncode}): "
                f"{' '.join(args)}\n{result.stderr}",
                returncode=result.returncode,
                stderr=result.stderr,
                context=ErrorContext(command=" ".join(args)),
            )
        return result


def _is_missing(stderr: str) -> bool:
    text = (stderr or "").lower()
    return any(marker in text for marker in _MISSING_MARKERS)


def _natural_key(name: str) -> tuple[str, int]:
    head, _, tail = name.rpartition("-")
    return (head, int(tail)) if tail.isdigit() else (name, -1)
