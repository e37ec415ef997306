"""Conversion between calendar dates and schedule day offsets.

Durations count calendar days inclusively: an issue starting and ending on the
same day lasts one day. No working-day calendar is applied.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta

from .models import MIN_DURATION, MIN_START, Task


def task_from_dates(
    task_id: str,
    start: date,
    due: date,
    epoch: date,
    name: str = "",
) -> Task:
    """Create a task from an issue's start and due date.

    A due date before the start counts as a one-day task; a start before the epoch
    is pinned to day 0.
    """
    duration = max(MIN_DURATION, (due - start).days + 1)
    earliest_start = max(MIN_START, (start - epoch).days)
    return Task(id=task_id, duration=duration, earliest_allowed_start=earliest_start, name=name)


def dates_from_timing(epoch: date, es: int, duration: int) -> tuple[date, date]:
    """Return the (start, due) dates of a task scheduled at ``es``."""
    start = epoch + timedelta(days=es)
    due = start + timedelta(days=max(MIN_DURATION, duration) - 1)
    return start, due


def schedule_epoch(starts: Iterable[date]) -> date:
    """First day of the month containing the earliest start date.

    Raises:
        ValueError: If ``starts`` is empty
    """
    earliest = min(starts, default=None)
    if earliest is None:
        raise ValueError("Cannot derive a schedule epoch without any start dates")
    return earliest.replace(day=1)


def parse_date(value: str | date | None) -> date | None:
    """Parse an ISO date string; ``None`` and unparseable text give ``None``."""
    if value is None:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except (ValueError, AttributeError):
        return None
