"""Container runtime access: unit specs, the docker CLI client, image builds."""

from nexus_fleet.runtime.docker import DockerRuntime
from nexus_fleet.runtime.image import BuildContext, build_image, prepare_build_context
from nexus_fleet.runtime.units import Mount, UnitSpec, UnitStats

__all__ = [
    "BuildContext",
    "DockerRuntime",
    "Mount",
    "UnitSpec",
    "UnitStats",
    "build_image",
    "prepare_build_context",
]
