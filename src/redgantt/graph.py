"""Dependency graph over the task registry.

Links are stored once, on their successor task. The successor side of every edge
is derived on demand from those lists, so there is a single source of truth per
edge and no back-reference to keep in sync.
"""

from __future__ import annotations

from collections import deque
from enum import Enum

from .exceptions import CycleError, UnknownTaskError
from .logger import get_logger
from .models import DependencyLink, LinkKind
from .registry import TaskRegistry
from .scheduler.config import CycleCheckMode

logger = get_logger()

SuccessorIndex = dict[str, list[tuple[str, DependencyLink]]]


class LinkChange(str, Enum):
    """Outcome of ``add_link``."""

    ADDED = "added"
    UPDATED = "updated"  # Same pair, kind or lag replaced
    UNCHANGED = "unchanged"


class DependencyGraph:
    """Typed, lagged dependency edges between registered tasks."""

    def __init__(
        self,
        registry: TaskRegistry,
        cycle_check: CycleCheckMode = CycleCheckMode.DIRECTED,
    ):
        self.registry = registry
        self.cycle_check = cycle_check

    def add_link(
        self,
        successor_id: str,
        predecessor_id: str,
        kind: LinkKind = LinkKind.FS,
        lag_days: int = 0,
    ) -> LinkChange:
        """Make ``predecessor_id`` a predecessor of ``successor_id``.

        A pair of tasks holds at most one link. Re-adding the same pair and kind is
        a no-op; the same pair with another kind replaces the existing link.

        Raises:
            UnknownTaskError: If either task is not registered
            CycleError: If the link would close a cycle (graph left untouched)
        """
        successor = self.registry.get(successor_id)
        self.registry.get(predecessor_id)
        kind = LinkKind.parse(kind)
        new_link = DependencyLink(predecessor_id=predecessor_id, lag_days=lag_days, kind=kind)

        existing = successor.link_to(predecessor_id)
        if existing is not None:
            if existing.kind == kind:
                logger.checks(f"Link {predecessor_id} -> {successor_id} ({kind.value}) unchanged")
                return LinkChange.UNCHANGED
            index = successor.links.index(existing)
            successor.links[index] = new_link
            logger.changes(
                f"Updated link {predecessor_id} -> {successor_id}: "
                f"{existing.kind.value}{existing.lag_days:+d} => {kind.value}{lag_days:+d}"
            )
            return LinkChange.UPDATED

        cycle = self.would_create_cycle(successor_id, predecessor_id)
        if cycle is not None:
            raise CycleError(cycle)

        successor.links.append(new_link)
        logger.changes(f"Added link {predecessor_id} -> {successor_id} ({kind.value}{lag_days:+d})")
        return LinkChange.ADDED

    def remove_link(self, successor_id: str, predecessor_id: str) -> bool:
        """Remove the link from ``predecessor_id`` to ``successor_id``.

        Returns:
            True if a link was removed, False if there was none
        """
        successor = self.registry.get(successor_id)
        existing = successor.link_to(predecessor_id)
        if existing is None:
            return False
        successor.links.remove(existing)
        logger.changes(f"Removed link {predecessor_id} -> {successor_id}")
        return True

    def remove_links_to(self, predecessor_id: str) -> int:
        """Drop every link whose predecessor is ``predecessor_id``."""
        removed = 0
        for task in self.registry:
            kept = [link for link in task.links if link.predecessor_id != predecessor_id]
            removed += len(task.links) - len(kept)
            task.links[:] = kept
        return removed

    def would_create_cycle(self, successor_id: str, predecessor_id: str) -> list[str] | None:
        """Return the cycle a new link would close, or None if it is safe.

        The returned path starts and ends with ``predecessor_id`` and runs through
        ``successor_id`` next.
        """
        if successor_id == predecessor_id:
            return [predecessor_id, successor_id]
        logger.checks(
            f"Checking link {predecessor_id} -> {successor_id} for cycles "
            f"({self.cycle_check.value})"
        )
        if self.cycle_check == CycleCheckMode.CONNECTED:
            return self._connected_path(successor_id, predecessor_id)
        return self._directed_cycle(successor_id, predecessor_id)

    def _directed_cycle(self, successor_id: str, predecessor_id: str) -> list[str] | None:
        """Search upward from the predecessor and downward from the successor at once.

        The link closes a cycle exactly when the successor already reaches the
        predecessor; the two frontiers meet somewhere on that path.
        """
        successors = self.successors()
        up_parent: dict[str, str | None] = {predecessor_id: None}
        down_parent: dict[str, str | None] = {successor_id: None}
        up_frontier = deque([predecessor_id])
        down_frontier = deque([successor_id])

        while up_frontier and down_frontier:
            for _ in range(len(up_frontier)):
                node = up_frontier.popleft()
                if node not in self.registry:
                    continue
                for pred_id in self.registry.get(node).predecessor_ids:
                    if pred_id in up_parent:
                        continue
                    up_parent[pred_id] = node
                    if pred_id in down_parent:
                        return self._join(predecessor_id, pred_id, up_parent, down_parent)
                    up_frontier.append(pred_id)

            for _ in range(len(down_frontier)):
                node = down_frontier.popleft()
                for succ_id, _link in successors.get(node, []):
                    if succ_id in down_parent:
                        continue
                    down_parent[succ_id] = node
                    if succ_id in up_parent:
                        return self._join(predecessor_id, succ_id, up_parent, down_parent)
                    down_frontier.append(succ_id)

        return None

    @staticmethod
    def _join(
        predecessor_id: str,
        meeting: str,
        up_parent: dict[str, str | None],
        down_parent: dict[str, str | None],
    ) -> list[str]:
        down_path: list[str] = []
        node: str | None = meeting
        while node is not None:
            down_path.append(node)
            node = down_parent[node]
        down_path.reverse()  # successor ... meeting

        up_path: list[str] = []
        node = up_parent[meeting]
        while node is not None:
            up_path.append(node)
            node = up_parent[node]  # meeting ... predecessor, excluding meeting

        return [predecessor_id, *down_path, *up_path]

    def _connected_path(self, successor_id: str, predecessor_id: str) -> list[str] | None:
        """Undirected reachability from the predecessor to the successor."""
        neighbours: dict[str, list[str]] = {task_id: [] for task_id in self.registry.ids()}
        for succ_id, link in self.links():
            neighbours[succ_id].append(link.predecessor_id)
            neighbours.setdefault(link.predecessor_id, []).append(succ_id)

        parent: dict[str, str | None] = {predecessor_id: None}
        queue = deque([predecessor_id])
        while queue:
            node = queue.popleft()
            if node == successor_id:
                path: list[str] = []
                current: str | None = node
                while current is not None:
                    path.append(current)
                    current = parent[current]
                # path runs successor ... predecessor
                return [predecessor_id, *path]
            for other in neighbours.get(node, []):
                if other not in parent:
                    parent[other] = node
                    queue.append(other)
        return None

    def has_edge(self, u: str, v: str) -> bool:
        """True when ``v`` holds a link on ``u``."""
        return v in self.registry and self.registry.get(v).link_to(u) is not None

    def links(self) -> list[tuple[str, DependencyLink]]:
        """All edges as (successor_id, link) pairs."""
        return [(task.id, link) for task in self.registry for link in task.links]

    def successors(self) -> SuccessorIndex:
        """Successor index rebuilt from the predecessor links.

        Every registered task gets an entry; links on unregistered predecessors
        are indexed under that id so that validation can report them.
        """
        index: SuccessorIndex = {task_id: [] for task_id in self.registry.ids()}
        for succ_id, link in self.links():
            index.setdefault(link.predecessor_id, []).append((succ_id, link))
        return index

    def successors_of(self, task_id: str) -> list[str]:
        return [succ_id for succ_id, _ in self.successors().get(task_id, [])]

    def predecessors_of(self, task_id: str) -> list[str]:
        return self.registry.get(task_id).predecessor_ids

    def validate(self) -> None:
        """Check that every link points at a registered task.

        Raises:
            UnknownTaskError: For the first dangling predecessor found
        """
        for succ_id, link in self.links():
            if link.predecessor_id not in self.registry:
                raise UnknownTaskError(
                    link.predecessor_id,
                    f"Task {succ_id} depends on unknown task: {link.predecessor_id}",
                )
