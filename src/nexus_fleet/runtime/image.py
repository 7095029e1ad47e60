"""Prover-node image build context.

Writes a ``Dockerfile``, an ``entrypoint.sh`` and a logrotate policy into the
build directory, then builds the image. When a file named
``nexus-network-stable`` is present in the build directory it is copied into
the image; otherwise the upstream installer is run at build time.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from nexus_fleet.core.logging import get_logger
from nexus_fleet.runtime.docker import DockerRuntime

logger = get_logger(__name__)

STABLE_BINARY = "nexus-network-stable"
INSTALLER_URL = "https://cli.nexus.xyz/"

_BASE = """\
FROM ubuntu:24.04

ENV DEBIAN_FRONTEND=noninteractive

RUN apt-get update && apt-get install -y \\
    curl \\
    screen \\
    bash \\
    logrotate \\
    && rm -rf /var/lib/apt/lists/*

RUN mkdir -p /root/.nexus/bin
"""

_STABLE = f"""
COPY {STABLE_BINARY} /usr/local/bin/nexus-network
RUN chmod +x /usr/local/bin/nexus-network
"""

_INSTALLER = f"""
RUN curl -sSL {INSTALLER_URL} | bash && \\
    cp /root/.nexus/bin/nexus-network /usr/local/bin/nexus-network && \\
    chmod +x /usr/local/bin/nexus-network
"""

_TAIL = """
COPY entrypoint.sh /entrypoint.sh
RUN chmod +x /entrypoint.sh

COPY nexus-logrotate /etc/logrotate.d/nexus

ENTRYPOINT ["/entrypoint.sh"]
"""

ENTRYPOINT = """\
#!/bin/bash
set -e

PROVER_ID_FILE="/root/.nexus/node-id"
LOG_FILE="${NEXUS_LOG:-/var/log/nexus/nexus.log}"
SCREEN_NAME="${SCREEN_NAME:-nexus}"

if [ -z "$NODE_ID" ]; then
    echo "NODE_ID is not set"
    exit 1
fi

mkdir -p "$(dirname "$PROVER_ID_FILE")" "$(dirname "$LOG_FILE")"
touch "$LOG_FILE" && chmod 644 "$LOG_FILE"
printf '%s\\n' "$NODE_ID" > "$PROVER_ID_FILE"

if ! command -v nexus-network >/dev/null 2>&1; then
    echo "nexus-network is not installed"
    exit 1
fi

screen -S "$SCREEN_NAME" -X quit >/dev/null 2>&1 || true
screen -dmS "$SCREEN_NAME" bash -c 'nexus-network start --node-id "$NODE_ID" >> "$LOG_FILE" 2>&1'

sleep 3

if ! screen -list | grep -q "$SCREEN_NAME"; then
    echo "failed to start $SCREEN_NAME"
    cat "$LOG_FILE"
    exit 1
fi

echo "started $SCREEN_NAME on $(hostname), logging to $LOG_FILE"
exec tail -f "$LOG_FILE"
"""

LOGROTATE_TEMPLATE = """\
{log_dir}/*.log {{
    daily
    missingok
    rotate 7
    compress
    delaycompress
    notifempty
    copytruncate
}}
"""


@dataclass(frozen=True)
class BuildContext:
    """Files written into the build directory."""

    directory: Path
    uses_stable_binary: bool

    @property
    def dockerfile(self) -> Path:
        return self.directory / "Dockerfile"


def render_dockerfile(use_stable: bool) -> str:
    return _BASE + (_STABLE if use_stable else _INSTALLER) + _TAIL


def prepare_build_context(build_dir: Path, log_dir: Path = Path("/var/log/nexus")) -> BuildContext:
    """Write Dockerfile, entrypoint and logrotate policy into *build_dir*."""
    build_dir.mkdir(parents=True, exist_ok=True)
    use_stable = (build_dir / STABLE_BINARY).is_file()
    if use_stable:
        logger.info("image.stable_binary_found", path=str(build_dir / STABLE_BINARY))
    else:
        logger.warning("image.stable_binary_missing", installer=INSTALLER_URL)

    (build_dir / "Dockerfile").write_text(render_dockerfile(use_stable), encoding="utf-8")
    entrypoint = build_dir / "entrypoint.sh"
    entrypoint.write_text(ENTRYPOINT, encoding="utf-8")
    entrypoint.chmod(0o755)
    (build_dir / "nexus-logrotate").write_text(
        LOGROTATE_TEMPLATE.format(log_dir=str(log_dir).rstrip("/")), encoding="utf-8"
    )
    return BuildContext(directory=build_dir, uses_stable_binary=use_stable)


def build_image(runtime: DockerRuntime, image: str, build_dir: Path, log_dir: Path) -> BuildContext:
    """Prepare the build context and run ``docker build``.

    Raises:
        RuntimeCommandError: The build failed.
    """
    context = prepare_build_context(build_dir, log_dir)
    runtime.build(image, build_dir)
    return context
