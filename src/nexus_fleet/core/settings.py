"""Fleet settings.

Every tunable (image name, log directory, memory limits, file locations and
thresholds) lives in one immutable :class:`FleetSettings` object. Components receive it at
construction; nothing reads the environment after startup.

Values come from ``NEXUS_*`` environment variables and an optional ``.env``
file, falling back to the defaults below::

    NEXUS_LOG_DIR=/srv/nexus/logs NEXUS_MIN_FREE_MEMORY_MB=4000 nexus-fleet rotate

Tags:
    settings, configuration, pydantic, environment
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nexus_fleet.core.resources import MemoryLimit


class FleetSettings(BaseSettings):
    """Immutable configuration shared by every fleet component.

    Fields
    ──────
    image_name             : Container image for prover nodes
    build_dir              : Docker build context directory
    log_dir                : Directory for node logs and the rotation logs
    pool_file / state_file : Identity pool and rotation state JSON files
    lock_file              : Run lock (defaults to ``<state_file>.lock``)
    slot_prefix            : Container name prefix for managed slots
    placeholder            : Reserved pool value meaning "not filled in"
    default_memory         : Ceiling for newly added slots
    fallback_memory        : Ceiling used when a unit carries none
    min_free_memory_mb     : Preflight: minimum available host memory
    max_disk_usage_percent : Preflight: maximum disk usage of ``disk_path``
    health_*               : Health-check timeout, confirm delay, poll interval
    settle_seconds         : Pause between destroy and create
    inter_slot_seconds     : Pause between slots in a rotation cycle
    """

    model_config = SettingsConfigDict(
        env_prefix="NEXUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ── Runtime ──────────────────────────────────────────────────
    image_name: str = "nexus-node:latest"
    build_dir: Path = Path("/root/nexus-docker")
    docker_timeout_seconds: int = 120

    # ── Files ────────────────────────────────────────────────────
    log_dir: Path = Path("/var/log/nexus")
    pool_file: Path = Path("/root/nexus-id-config.json")
    state_file: Path = Path("/root/nexus-id-state.json")
    lock_file: Path | None = None

    # ── Slots ────────────────────────────────────────────────────
    slot_prefix: str = "nexus-node-"
    placeholder: str = "PLACEHOLDER"
    default_memory: str = "5g"
    fallback_memory: str = "6g"

    # ── Preflight ────────────────────────────────────────────────
    min_free_memory_mb: int = 2000
    max_disk_usage_percent: float = 85.0
    disk_path: Path = Path("/")

    # ── Timing ───────────────────────────────────────────────────
    health_timeout_seconds: float = 30.0
    health_confirm_seconds: float = 5.0
    health_poll_seconds: float = 1.0
    settle_seconds: float = 2.0
    inter_slot_seconds: float = 3.0

    # ── Scheduling / monitoring ──────────────────────────────────
    rotation_interval_hours: int = Field(default=2, ge=1, le=23)
    boot_delay_seconds: int = 120
    monitor_max_log_age_seconds: int = 10800

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("default_memory", "fallback_memory")
    @classmethod
    def _check_memory(cls, value: str) -> str:
        MemoryLimit.parse(value)
        return value

    @property
    def lock_path(self) -> Path:
        """Run lock file, next to the state file unless configured."""
        if self.lock_file is not None:
            return self.lock_file
        return self.state_file.with_name(self.state_file.name + ".lock")

    @property
    def default_limit(self) -> MemoryLimit:
        return MemoryLimit.parse(self.default_memory)

    @property
    def fallback_limit(self) -> MemoryLimit:
        return MemoryLimit.parse(self.fallback_memory)

    @property
    def rotate_log(self) -> Path:
        return self.log_dir / "nexus-rotate.log"

    @property
    def rotate_output(self) -> Path:
        """Console output and structured records of cron-driven rotation runs."""
        return self.log_dir / "nexus-rotate.out"

    @property
    def failure_log(self) -> Path:
        return self.log_dir / "rotation-failure.log"

    @property
    def monitor_log(self) -> Path:
        return self.log_dir / "nexus-monitor.log"


@lru_cache(maxsize=1)
def get_settings() -> FleetSettings:
    """Return the process-wide settings, loaded once from the environment."""
    return FleetSettings()
