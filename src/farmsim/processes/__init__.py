"""Timed activities: crop growth, crafting, mining and adventures."""

from .base import PASSIVE_KINDS, Process, ProcessConfig, ProcessKind, ProcessStatus
from .handlers import harvest_plot
from .manager import ProcessManager, ProcessTickResult

__all__ = [
    "PASSIVE_KINDS",
    "Process",
    "ProcessConfig",
    "ProcessKind",
    "ProcessManager",
    "ProcessStatus",
    "ProcessTickResult",
    "harvest_plot",
]
