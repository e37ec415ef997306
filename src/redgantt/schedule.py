"""Schedule: tasks, links and the CPM result derived from them.

Every mutator applies its change completely or not at all, invalidates the
previous result and runs a full recompute (topological sort plus both CPM
passes). There is no incremental update.
"""

from __future__ import annotations

from .exceptions import CycleError
from .graph import DependencyGraph, LinkChange
from .logger import checks_enabled, get_logger
from .models import DependencyLink, LinkKind, Task
from .registry import TaskRegistry
from .scheduler import CpmResult, SchedulingConfig, TaskTiming, compute, topological_sort_adjacency

logger = get_logger()


class Schedule:
    """The unit that is sorted and scheduled together.

    A schedule is an explicit value owned by its caller (an editing session, a CLI
    command, a test); nothing in the package keeps a global one.
    """

    def __init__(self, tasks: list[Task] | None = None, config: SchedulingConfig | None = None):
        """Build a schedule.

        Links already present on ``tasks`` are re-added through the graph so that
        they get the same cycle guard as interactive edits.

        Args:
            tasks: Initial tasks
            config: Scheduling configuration (defaults apply when omitted)
        """
        self.config = config or SchedulingConfig()
        self.registry = TaskRegistry()
        self.graph = DependencyGraph(self.registry, self.config.cycle_check)
        self._result: CpmResult | None = None

        pending: list[tuple[Task, list[DependencyLink]]] = []
        try:
            for task in tasks or []:
                self.registry.add(task)
                pending.append((task, list(task.links)))
                task.links.clear()
            for task, links in pending:
                for link in links:
                    self.graph.add_link(task.id, link.predecessor_id, link.kind, link.lag_days)
        except Exception:
            for task, links in pending:
                task.links[:] = links
            raise
        self.recompute()

    # Mutators

    def add_task(self, task: Task) -> None:
        """Register a task; its own links go through ``add_link``."""
        self.registry.add(task)
        links = list(task.links)
        task.links.clear()
        try:
            for link in links:
                self.graph.add_link(task.id, link.predecessor_id, link.kind, link.lag_days)
        except Exception:
            self.registry.remove(task.id)
            task.links[:] = links
            raise
        logger.changes(f"Added task {task.id} (duration={task.duration})")
        self._invalidate_and_recompute()

    def remove_task(self, task_id: str) -> Task:
        """Remove a task along with every link that points at it."""
        task = self.registry.get(task_id)
        dropped = self.graph.remove_links_to(task_id)
        self.registry.remove(task_id)
        logger.changes(f"Removed task {task_id} and {dropped} dependent link(s)")
        self._invalidate_and_recompute()
        return task

    def add_link(
        self,
        successor_id: str,
        predecessor_id: str,
        kind: LinkKind | str | None = None,
        lag_days: int | None = None,
    ) -> LinkChange:
        """Add ``predecessor_id -> successor_id`` and recompute.

        Kind and lag default to the configured link defaults.

        Raises:
            CycleError: If the link would close a cycle; nothing changes
            UnknownTaskError: If either id is not registered
        """
        change = self.graph.add_link(
            successor_id,
            predecessor_id,
            LinkKind.parse(kind) if kind is not None else self.config.default_link_kind,
            self.config.default_lag_days if lag_days is None else lag_days,
        )
        if change != LinkChange.UNCHANGED:
            self._invalidate_and_recompute()
        return change

    def remove_link(self, successor_id: str, predecessor_id: str) -> bool:
        removed = self.graph.remove_link(successor_id, predecessor_id)
        if removed:
            self._invalidate_and_recompute()
        return removed

    def set_duration(self, task_id: str, duration: int) -> None:
        """Change a task's duration (clamped to at least one day) and recompute."""
        task = self.registry.get(task_id)
        old = task.duration
        task.duration = duration
        logger.changes(f"Duration of {task_id}: {old} -> {task.duration}")
        self._invalidate_and_recompute()

    def apply_start_constraint(self, task_id: str, new_earliest_start: int) -> None:
        """Store a "not before" constraint (clamped to day 0) and recompute.

        This is what a committed drag-move calls, once per commit.
        """
        task = self.registry.get(task_id)
        old = task.earliest_allowed_start
        task.earliest_allowed_start = new_earliest_start
        logger.changes(
            f"Earliest start of {task_id}: {old} -> {task.earliest_allowed_start}"
        )
        self._invalidate_and_recompute()

    # Queries

    def can_add_link(self, successor_id: str, predecessor_id: str) -> bool:
        """Whether ``add_link`` would pass the cycle guard (no state change)."""
        if successor_id not in self.registry or predecessor_id not in self.registry:
            return False
        existing = self.registry.get(successor_id).link_to(predecessor_id)
        if existing is not None:
            return True
        return self.graph.would_create_cycle(successor_id, predecessor_id) is None

    @property
    def is_stale(self) -> bool:
        return self._result is None

    @property
    def result(self) -> CpmResult:
        """The current CPM result, recomputed first if an edit invalidated it."""
        if self._result is None:
            self.recompute()
        assert self._result is not None
        return self._result

    def timing(self, task_id: str) -> TaskTiming:
        return self.result.timing(task_id)

    def timings(self) -> dict[str, TaskTiming]:
        return self.result.timings()

    def critical_path(self) -> list[str]:
        return self.result.critical_path()

    @property
    def project_finish(self) -> int:
        return self.result.project_finish

    @property
    def tasks(self) -> list[Task]:
        return list(self.registry)

    def task(self, task_id: str) -> Task:
        return self.registry.get(task_id)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self.registry

    def __len__(self) -> int:
        return len(self.registry)

    # Recompute

    def recompute(self) -> CpmResult:
        """Topologically sort the whole graph and run both CPM passes.

        Raises:
            UnknownTaskError: If a link points at an unregistered task
            CycleError: If the graph is cyclic, which the link guard should prevent
        """
        self._result = None
        self.graph.validate()
        successors = {
            task_id: [succ_id for succ_id, _ in entries]
            for task_id, entries in self.graph.successors().items()
        }
        try:
            order = topological_sort_adjacency(self.registry.ids(), successors)
        except CycleError:
            logger.error("Schedule graph is cyclic; a link bypassed the cycle guard")
            raise
        self._result = compute(self.registry.as_dict(), order)
        if checks_enabled():
            logger.checks(
                f"Recomputed schedule: {len(order)} tasks, finish day {self._result.project_finish}, "
                f"{len(self._result.critical_path())} critical"
            )
        return self._result

    def _invalidate_and_recompute(self) -> None:
        self._result = None
        self.recompute()
