"""Critical Path Method forward and backward passes.

All values are whole days from the schedule epoch. Lags may be negative and go
through the same max/min formulas as positive ones; only the final earliest start
is clamped to day 0.
"""

from collections.abc import Mapping, Sequence

from redgantt.exceptions import InvalidArgumentError, UnknownTaskError
from redgantt.logger import debug_enabled, get_logger
from redgantt.models import DependencyLink, LinkKind, Task

from .core import CpmResult

logger = get_logger()


def compute(tasks: Mapping[str, Task], topo_order: Sequence[str]) -> CpmResult:
    """Run both passes over ``tasks`` in ``topo_order``.

    Args:
        tasks: Tasks keyed by id
        topo_order: A topological ordering of exactly the keys of ``tasks``

    Returns:
        CpmResult with ES/EF/LS/LF for every task

    Raises:
        UnknownTaskError: If a link references a task missing from ``tasks``
        InvalidArgumentError: If ``topo_order`` is not a valid ordering of ``tasks``
    """
    order = list(topo_order)
    if len(order) != len(tasks) or set(order) != set(tasks):
        raise InvalidArgumentError(
            "Topological order must list every scheduled task exactly once "
            f"({len(order)} ids given for {len(tasks)} tasks)"
        )
    for task in tasks.values():
        for link in task.links:
            if link.predecessor_id not in tasks:
                raise UnknownTaskError(
                    link.predecessor_id,
                    f"Task {task.id} depends on unknown task: {link.predecessor_id}",
                )

    result = CpmResult(order=order)
    _forward_pass(tasks, order, result)
    _backward_pass(tasks, order, result)

    if debug_enabled():
        for task_id in order:
            timing = result.timing(task_id)
            logger.debug(
                f"  {task_id}: ES={timing.es} EF={timing.ef} LS={timing.ls} LF={timing.lf} "
                f"slack={timing.slack}{' critical' if timing.is_critical else ''}"
            )
    return result


def _forward_pass(tasks: Mapping[str, Task], order: list[str], result: CpmResult) -> None:
    for task_id in order:
        task = tasks[task_id]
        es = 0
        for link in task.links:
            pred_id = link.predecessor_id
            if pred_id not in result.ef:
                raise InvalidArgumentError(
                    f"Topological order places {task_id} before its predecessor {pred_id}"
                )
            es = max(es, _earliest_start_bound(link, result.es[pred_id], result.ef[pred_id], task))

        es = max(es, task.earliest_allowed_start, 0)
        result.es[task_id] = es
        result.ef[task_id] = es + task.duration

    result.project_finish = max(result.ef.values(), default=0)


def _earliest_start_bound(link: DependencyLink, pred_es: int, pred_ef: int, task: Task) -> int:
    """Lower bound a link places on its successor's earliest start."""
    lag = link.lag_days
    if link.kind == LinkKind.FS:
        return pred_ef + lag
    if link.kind == LinkKind.SS:
        return pred_es + lag
    if link.kind == LinkKind.FF:
        return pred_ef + lag - task.duration
    return pred_es + lag - task.duration  # SF


def _backward_pass(tasks: Mapping[str, Task], order: list[str], result: CpmResult) -> None:
    successors: dict[str, list[tuple[str, DependencyLink]]] = {task_id: [] for task_id in order}
    for task_id in order:
        for link in tasks[task_id].links:
            successors[link.predecessor_id].append((task_id, link))

    for task_id in reversed(order):
        task = tasks[task_id]
        lf = result.project_finish
        ls: int | None = None  # Set only by SS/SF successors

        for succ_id, link in successors[task_id]:
            lag = link.lag_days
            if link.kind == LinkKind.FS:
                lf = min(lf, result.ls[succ_id] - lag)
            elif link.kind == LinkKind.SS:
                bound = result.ls[succ_id] - lag
                ls = bound if ls is None else min(ls, bound)
            elif link.kind == LinkKind.FF:
                lf = min(lf, result.lf[succ_id] - lag)
            else:  # SF
                bound = result.lf[succ_id] - lag
                ls = bound if ls is None else min(ls, bound)

        if ls is None:
            ls = lf - task.duration
        else:
            lf = min(lf, ls + task.duration)

        result.ls[task_id] = ls
        result.lf[task_id] = lf
