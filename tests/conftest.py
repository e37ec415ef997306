"""Pytest configuration and fixtures for redgantt tests."""

from __future__ import annotations

import random

import pytest

from redgantt import context
from redgantt.logger import reset_logger
from redgantt.models import DependencyLink, LinkKind, Task
from redgantt.schedule import Schedule
from redgantt.scheduler import SchedulingConfig


@pytest.fixture(autouse=True)
def clean_logger() -> None:
    """Each test starts with the package logger at errors only."""
    reset_logger()


@pytest.fixture(autouse=True)
def clear_context() -> None:
    """Forget any --config path a previous CLI invocation stored."""
    context.set_config_path(None)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer credentials out of the tests."""
    monkeypatch.delenv("REDMINE_URL", raising=False)
    monkeypatch.delenv("REDMINE_API_KEY", raising=False)


def links(*texts: str) -> list[DependencyLink]:
    """Create links from ``pred[:lag[:kind]]`` strings.

    Example:
        Task("b", 2, links=links("a", "c:1:SS"))
    """
    return [DependencyLink.parse(text) for text in texts]


def chain(*durations: int) -> list[Task]:
    """Tasks t0 -> t1 -> ... with FS links and the given durations."""
    tasks: list[Task] = []
    for i, duration in enumerate(durations):
        preds = links(f"t{i - 1}") if i else []
        tasks.append(Task(f"t{i}", duration, links=preds))
    return tasks


def random_dag(seed: int, size: int = 12, edge_chance: float = 0.3) -> list[Task]:
    """A random acyclic task set: edges only go from lower to higher index."""
    rng = random.Random(seed)
    kinds = list(LinkKind)
    tasks: list[Task] = []
    for i in range(size):
        task_links = [
            DependencyLink(f"n{j}", rng.randint(-2, 3), rng.choice(kinds))
            for j in range(i)
            if rng.random() < edge_chance
        ]
        tasks.append(
            Task(
                f"n{i}",
                duration=rng.randint(1, 6),
                earliest_allowed_start=rng.choice([0, 0, 0, rng.randint(0, 10)]),
                links=task_links,
            )
        )
    return tasks


def make_schedule(tasks: list[Task], **config: object) -> Schedule:
    return Schedule(tasks, SchedulingConfig(**config))  # type: ignore[arg-type]
