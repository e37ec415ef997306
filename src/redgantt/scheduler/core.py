"""Result dataclasses for the scheduling engine."""

from dataclasses import dataclass, field

from redgantt.exceptions import UnknownTaskError


def _default_int_dict() -> dict[str, int]:
    return {}


def _default_str_list() -> list[str]:
    return []


@dataclass(frozen=True)
class TaskTiming:
    """CPM values for one task, all in whole days from the schedule epoch."""

    es: int  # Earliest start
    ef: int  # Earliest finish
    ls: int  # Latest start
    lf: int  # Latest finish

    @property
    def slack(self) -> int:
        return self.ls - self.es

    @property
    def is_critical(self) -> bool:
        return self.slack == 0


@dataclass
class CpmResult:
    """Output of one forward and backward pass."""

    es: dict[str, int] = field(default_factory=_default_int_dict)
    ef: dict[str, int] = field(default_factory=_default_int_dict)
    ls: dict[str, int] = field(default_factory=_default_int_dict)
    lf: dict[str, int] = field(default_factory=_default_int_dict)
    order: list[str] = field(default_factory=_default_str_list)  # Topological order used
    project_finish: int = 0

    def timing(self, task_id: str) -> TaskTiming:
        if task_id not in self.es:
            raise UnknownTaskError(task_id)
        return TaskTiming(
            es=self.es[task_id],
            ef=self.ef[task_id],
            ls=self.ls[task_id],
            lf=self.lf[task_id],
        )

    def timings(self) -> dict[str, TaskTiming]:
        return {task_id: self.timing(task_id) for task_id in self.order}

    def slack(self, task_id: str) -> int:
        return self.timing(task_id).slack

    def is_critical(self, task_id: str) -> bool:
        return self.timing(task_id).is_critical

    def critical_path(self) -> list[str]:
        """Critical task ids in topological order."""
        return [task_id for task_id in self.order if self.ls[task_id] == self.es[task_id]]
