"""Built-in sample WBS plan, handy for trying the CLI without a Redmine server."""

from __future__ import annotations

from .models import DependencyLink, Task
from .schedule import Schedule
from .scheduler import SchedulingConfig

# (wbs number, name, duration, predecessors)
SAMPLE_WBS: list[tuple[str, str, int, list[str]]] = [
    ("1", "Planning", 3, []),
    ("1.1", "Requirements definition", 5, ["1"]),
    ("1.2", "Basic design", 7, ["1.1"]),
    ("2", "Implementation", 10, ["1.2"]),
    ("2.1", "Frontend implementation", 6, ["2"]),
    ("2.2", "Backend implementation", 8, ["2"]),
    ("3", "System testing", 5, ["2.1", "2.2"]),
]


def sample_tasks() -> list[Task]:
    return [
        Task(
            id=wbs_no,
            name=name,
            duration=duration,
            links=[DependencyLink(predecessor_id=pred) for pred in preds],
        )
        for wbs_no, name, duration, preds in SAMPLE_WBS
    ]


def sample_schedule(config: SchedulingConfig | None = None) -> Schedule:
    return Schedule(sample_tasks(), config)
