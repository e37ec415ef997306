"""Scheduler package - topological ordering and critical path analysis.

Main entry points:
- topological_sort / topological_sort_adjacency: Kahn's algorithm with FIFO ties
- compute: CPM forward and backward pass over an ordered task set

Configuration:
- SchedulingConfig: cycle check mode and link defaults
"""

from .config import CycleCheckMode, SchedulingConfig
from .core import CpmResult, TaskTiming
from .cpm import compute
from .toposort import topological_sort, topological_sort_adjacency

__all__ = [
    "CpmResult",
    "CycleCheckMode",
    "SchedulingConfig",
    "TaskTiming",
    "compute",
    "topological_sort",
    "topological_sort_adjacency",
]
