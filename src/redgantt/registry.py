"""Task registry: the set of schedulable tasks keyed by id."""

from __future__ import annotations

from collections.abc import Iterator

from .exceptions import InvalidArgumentError, UnknownTaskError
from .models import Task


class TaskRegistry:
    """Tasks keyed by unique id, iterated in insertion order."""

    def __init__(self, tasks: list[Task] | None = None):
        self._tasks: dict[str, Task] = {}
        for task in tasks or []:
            self.add(task)

    def add(self, task: Task) -> None:
        """Insert a task.

        Raises:
            InvalidArgumentError: If a task with the same id is already registered
        """
        if task.id in self._tasks:
            raise InvalidArgumentError(f"Duplicate task id: {task.id}")
        self._tasks[task.id] = task

    def get(self, task_id: str) -> Task:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise UnknownTaskError(task_id) from None

    def remove(self, task_id: str) -> Task:
        """Remove and return a task. Links pointing at it are the graph's concern."""
        task = self.get(task_id)
        del self._tasks[task_id]
        return task

    def ids(self) -> list[str]:
        return list(self._tasks)

    def as_dict(self) -> dict[str, Task]:
        return dict(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __iter__(self) -> Iterator[Task]:
        return iter(list(self._tasks.values()))

    def __len__(self) -> int:
        return len(self._tasks)
