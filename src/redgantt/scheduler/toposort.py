"""Topological ordering with Kahn's algorithm."""

from collections import deque
from collections.abc import Callable, Iterable, Mapping

from redgantt.exceptions import CycleError, InvalidArgumentError
from redgantt.logger import get_logger

logger = get_logger()


def topological_sort(nodes: Iterable[str], has_edge: Callable[[str, str], bool]) -> list[str]:
    """Order ``nodes`` so that every edge ``u -> v`` has ``u`` before ``v``.

    ``has_edge(u, v)`` is evaluated for every ordered pair of nodes. Ties are broken
    by the order in which nodes become eligible: the initial queue follows the input
    order, later nodes are appended as their in-degree reaches zero.

    Raises:
        CycleError: If some nodes could not be ordered
    """
    node_list = _unique(nodes)
    successors = {u: [v for v in node_list if has_edge(u, v)] for u in node_list}
    return _kahn(node_list, successors)


def topological_sort_adjacency(
    nodes: Iterable[str], successors_of: Mapping[str, Iterable[str]]
) -> list[str]:
    """Same ordering as ``topological_sort`` from a successor mapping.

    Edges leading outside ``nodes`` are ignored.
    """
    node_list = _unique(nodes)
    node_set = set(node_list)
    successors = {
        u: [v for v in successors_of.get(u, ()) if v in node_set] for u in node_list
    }
    return _kahn(node_list, successors)


def _unique(nodes: Iterable[str]) -> list[str]:
    node_list = list(nodes)
    if len(set(node_list)) != len(node_list):
        raise InvalidArgumentError("Topological sort input contains duplicate nodes")
    return node_list


def _kahn(node_list: list[str], successors: dict[str, list[str]]) -> list[str]:
    in_degree = dict.fromkeys(node_list, 0)
    for u in node_list:
        for v in successors[u]:
            in_degree[v] += 1

    queue = deque(node for node in node_list if in_degree[node] == 0)
    order: list[str] = []

    while queue:
        u = queue.popleft()
        order.append(u)
        for v in successors[u]:
            in_degree[v] -= 1
            if in_degree[v] == 0:
                queue.append(v)

    if len(order) != len(node_list):
        ordered = set(order)
        leftover = [node for node in node_list if node not in ordered]
        cycle = _find_cycle(leftover, successors)
        logger.error(
            f"Topological sort could not order {len(leftover)} of {len(node_list)} tasks; "
            f"the dependency graph contains a cycle: {' -> '.join(cycle)}"
        )
        raise CycleError(cycle)

    return order


def _find_cycle(leftover: list[str], successors: dict[str, list[str]]) -> list[str]:
    """Walk predecessors among the unordered nodes until one repeats.

    Every unordered node still has an unordered predecessor, so the walk always
    closes a loop.
    """
    remaining = set(leftover)
    predecessors: dict[str, list[str]] = {node: [] for node in leftover}
    for u in leftover:
        for v in successors[u]:
            if v in remaining:
                predecessors[v].append(u)

    walk = [leftover[0]]
    position = {leftover[0]: 0}
    while True:
        previous = predecessors[walk[-1]][0]
        if previous in position:
            loop = walk[position[previous] :]
            loop.reverse()
            return [*loop, loop[0]]
        position[previous] = len(walk)
        walk.append(previous)
