"""Building schedules from Redmine issues and pushing edits back."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from .dates import dates_from_timing, schedule_epoch, task_from_dates
from .exceptions import CycleError, InvalidArgumentError
from .graph import LinkChange
from .loader import ScheduleDocument, ScheduleMetadata
from .logger import get_logger
from .models import LinkKind
from .redmine_client import RedmineClient, RedmineError, RedmineIssue, RedmineRelation
from .schedule import Schedule
from .scheduler import SchedulingConfig

logger = get_logger()

# Relation types where the relation's issue_id comes first
PREDECESSOR_FIRST = frozenset({"precedes", "blocks"})
# Relation types where the relation's issue_to_id comes first
SUCCESSOR_FIRST = frozenset({"follows", "blocked", "blocked_by"})
# Only these carry a delay in Redmine
LAGGED = frozenset({"precedes", "follows"})


class RedmineSyncError(RedmineError):
    """A local change could not be mirrored in Redmine."""


@dataclass
class SyncedSchedule:
    """A schedule built from Redmine issues, with the date of its day 0."""

    schedule: Schedule
    epoch: date
    skipped: list[str] = field(default_factory=list)  # Relations that were not restored

    def to_document(self, project_id: int | str | None = None) -> ScheduleDocument:
        return ScheduleDocument(
            schedule=self.schedule,
            metadata=ScheduleMetadata(epoch=self.epoch, project_id=project_id),
        )

    @classmethod
    def from_document(cls, document: ScheduleDocument) -> SyncedSchedule:
        """Wrap a loaded schedule file; the file must record its epoch."""
        if document.metadata.epoch is None:
            raise RedmineSyncError("Schedule file has no metadata.epoch; cannot map days to dates")
        return cls(schedule=document.schedule, epoch=document.metadata.epoch)


def relation_edge(relation: RedmineRelation) -> tuple[str, str, int] | None:
    """Map a relation to ``(predecessor_id, successor_id, lag_days)``.

    Returns None for relation types that do not order issues (relates, duplicates,
    copied_to, ...).
    """
    rel_type = relation.relation_type
    lag = (relation.delay or 0) if rel_type in LAGGED else 0
    if rel_type in PREDECESSOR_FIRST:
        return str(relation.issue_id), str(relation.issue_to_id), lag
    if rel_type in SUCCESSOR_FIRST:
        return str(relation.issue_to_id), str(relation.issue_id), lag
    return None


def build_schedule(
    issues: Iterable[RedmineIssue], config: SchedulingConfig | None = None
) -> SyncedSchedule:
    """Turn a project's issues into a scheduled ``Schedule``.

    Only issues with both a start and a due date become tasks. Each relation is
    reported on both of its issues, so edges are deduplicated.
    """
    dated = sorted(
        (issue for issue in issues if issue.start_date and issue.due_date),
        key=lambda issue: issue.id,
    )
    if not dated:
        logger.warning("No issues with both a start and a due date")
        return SyncedSchedule(schedule=Schedule(config=config), epoch=date.today().replace(day=1))

    epoch = schedule_epoch(issue.start_date for issue in dated if issue.start_date)
    tasks = [
        task_from_dates(str(issue.id), issue.start_date, issue.due_date, epoch, issue.subject)  # type: ignore[arg-type]
        for issue in dated
    ]
    schedule = Schedule(tasks, config)

    skipped: list[str] = []
    seen: set[tuple[str, str]] = set()
    for issue in dated:
        for relation in issue.relations:
            edge = relation_edge(relation)
            if edge is None:
                continue
            pred_id, succ_id, lag = edge
            if (pred_id, succ_id) in seen:
                continue
            seen.add((pred_id, succ_id))

            if pred_id not in schedule or succ_id not in schedule:
                note = f"#{pred_id} -> #{succ_id}: issue without dates or outside the project"
                skipped.append(note)
                logger.checks(f"Skipped relation {note}")
                continue
            try:
                schedule.graph.add_link(succ_id, pred_id, LinkKind.FS, lag)
            except CycleError as e:
                note = f"#{pred_id} -> #{succ_id}: {e}"
                skipped.append(note)
                logger.warning(f"Skipped relation {note}")

    schedule.recompute()
    logger.changes(
        f"Built schedule from {len(dated)} issues, epoch {epoch.isoformat()}, "
        f"{len(skipped)} relation(s) skipped"
    )
    return SyncedSchedule(schedule=schedule, epoch=epoch, skipped=skipped)


def pull_schedule(
    client: RedmineClient, project_id: int | str, config: SchedulingConfig | None = None
) -> SyncedSchedule:
    return build_schedule(client.list_issues(project_id), config)


def _issue_id(task_id: str) -> int:
    try:
        return int(task_id)
    except ValueError:
        raise InvalidArgumentError(f"Task {task_id} is not a Redmine issue id") from None


def push_dates(
    client: RedmineClient,
    synced: SyncedSchedule,
    task_ids: Iterable[str] | None = None,
) -> list[tuple[str, date, date]]:
    """Write scheduled dates back to Redmine.

    Args:
        client: Redmine client
        synced: Schedule and its epoch
        task_ids: Tasks to push (default: all)

    Returns:
        The ``(task_id, start, due)`` triples that were written

    Raises:
        RedmineSyncError: If any update failed; the others are still attempted
    """
    schedule = synced.schedule
    ids = list(task_ids) if task_ids is not None else [task.id for task in schedule.tasks]

    pushed: list[tuple[str, date, date]] = []
    failures: list[str] = []
    for task_id in ids:
        task = schedule.task(task_id)
        start, due = dates_from_timing(synced.epoch, schedule.timing(task_id).es, task.duration)
        try:
            client.update_issue_dates(_issue_id(task_id), start, due)
        except (RedmineError, InvalidArgumentError) as e:
            failures.append(f"#{task_id}: {e}")
            logger.error(f"Failed to update #{task_id}: {e}")
            continue
        pushed.append((task_id, start, due))
        logger.changes(f"#{task_id}: {start.isoformat()} .. {due.isoformat()}")

    if failures:
        raise RedmineSyncError(
            f"{len(failures)} of {len(ids)} issue(s) not updated: " + "; ".join(failures)
        )
    return pushed


def link_and_push(
    client: RedmineClient,
    synced: SyncedSchedule,
    successor_id: str,
    predecessor_id: str,
    lag_days: int = 0,
) -> LinkChange:
    """Add a finish-to-start link locally, then create the ``precedes`` relation.

    Raises:
        CycleError: If the link would close a cycle; nothing is sent
        RedmineSyncError: If Redmine refused the relation; the local link is kept
    """
    change = synced.schedule.add_link(successor_id, predecessor_id, LinkKind.FS, lag_days)
    if change == LinkChange.UNCHANGED:
        return change

    try:
        client.create_relation(
            _issue_id(predecessor_id), _issue_id(successor_id), delay=lag_days
        )
    except (RedmineError, InvalidArgumentError) as e:
        raise RedmineSyncError(
            f"Link #{predecessor_id} -> #{successor_id} kept locally but not created in Redmine: {e}"
        ) from e
    logger.changes(f"Created relation #{predecessor_id} precedes #{successor_id}")
    return change


def unlink_and_push(
    client: RedmineClient,
    synced: SyncedSchedule,
    successor_id: str,
    predecessor_id: str,
) -> bool:
    """Remove a link locally, then delete the matching Redmine relations.

    Every relation that orders the two issues this way is deleted, whatever its
    type. Returns False, and sends nothing, when there was no local link.

    Raises:
        RedmineSyncError: If Redmine could not be updated; the local link stays removed
    """
    if not synced.schedule.remove_link(successor_id, predecessor_id):
        return False

    deleted: list[int] = []
    try:
        issue = client.get_issue(_issue_id(successor_id))
        for relation in issue.relations:
            edge = relation_edge(relation)
            if relation.id is None or edge is None or edge[:2] != (predecessor_id, successor_id):
                continue
            client.delete_relation(relation.id)
            deleted.append(relation.id)
            logger.changes(f"Deleted relation {relation.id} ({relation.relation_type})")
    except (RedmineError, InvalidArgumentError) as e:
        raise RedmineSyncError(
            f"Link #{predecessor_id} -> #{successor_id} removed locally but not in Redmine: {e}"
        ) from e

    if not deleted:
        logger.warning(f"No Redmine relation #{predecessor_id} -> #{successor_id} to delete")
    return True
