"""
Operations layer.

Plain functions taking a :class:`FleetContext` and returning an
:class:`OperationResult`. The CLI and the interactive menu are thin
renderers on top of these.
"""

from nexus_fleet.ops.context import FleetContext
from nexus_fleet.ops.result import OperationError, OperationResult

__all__ = ["FleetContext", "OperationError", "OperationResult"]
