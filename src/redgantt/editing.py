"""Commit-only editing gestures.

A gesture keeps a preview value that pointer moves update freely. The schedule is
touched exactly once, on ``commit()``; ``cancel()`` leaves it as it was.
"""

from __future__ import annotations

from .exceptions import InvalidArgumentError
from .graph import LinkChange
from .logger import get_logger
from .models import MIN_DURATION, MIN_START, LinkKind
from .schedule import Schedule

logger = get_logger()


class _Gesture:
    def __init__(self, schedule: Schedule, task_id: str):
        self.schedule = schedule
        self.task = schedule.task(task_id)
        self._finished = False

    def _ensure_open(self) -> None:
        if self._finished:
            raise InvalidArgumentError(f"Gesture on {self.task.id} already finished")

    def _finish(self) -> None:
        self._ensure_open()
        self._finished = True

    def cancel(self) -> None:
        self._finish()
        logger.checks(f"Cancelled {type(self).__name__} on {self.task.id}")

    @property
    def finished(self) -> bool:
        return self._finished


class MoveGesture(_Gesture):
    """Drag a bar horizontally; commits a new earliest allowed start."""

    def __init__(self, schedule: Schedule, task_id: str):
        super().__init__(schedule, task_id)
        self.origin = schedule.timing(task_id).es
        self.preview_start = self.origin

    def update(self, delta_days: int) -> int:
        """Move the preview ``delta_days`` from where the drag began."""
        self._ensure_open()
        self.preview_start = max(MIN_START, self.origin + delta_days)
        return self.preview_start

    def commit(self) -> int:
        self._finish()
        self.schedule.apply_start_constraint(self.task.id, self.preview_start)
        return self.preview_start


class ResizeGesture(_Gesture):
    """Drag a bar's right edge; commits a new duration."""

    def __init__(self, schedule: Schedule, task_id: str):
        super().__init__(schedule, task_id)
        self.origin = self.task.duration
        self.preview_duration = self.origin

    def update(self, delta_days: int) -> int:
        self._ensure_open()
        self.preview_duration = max(MIN_DURATION, self.origin + delta_days)
        return self.preview_duration

    def commit(self) -> int:
        self._finish()
        self.schedule.set_duration(self.task.id, self.preview_duration)
        return self.preview_duration


class LinkGesture(_Gesture):
    """Drag from one bar onto another to make the target a predecessor of the source.

    ``hover()`` reports whether dropping on a target would be accepted, using the
    same cycle guard as the commit.
    """

    def __init__(
        self,
        schedule: Schedule,
        task_id: str,
        kind: LinkKind | str | None = None,
        lag_days: int | None = None,
    ):
        super().__init__(schedule, task_id)
        self.kind = kind
        self.lag_days = lag_days
        self.target_id: str | None = None

    def hover(self, target_id: str | None) -> bool:
        self._ensure_open()
        self.target_id = target_id
        if target_id is None:
            return False
        return self.schedule.can_add_link(self.task.id, target_id)

    def commit(self) -> LinkChange:
        """Add the link on the hovered target.

        Raises:
            InvalidArgumentError: If nothing is hovered
            CycleError: If the link would close a cycle (gesture still ends)
        """
        if self.target_id is None:
            self._ensure_open()
            raise InvalidArgumentError(f"No drop target for link from {self.task.id}")
        self._finish()
        return self.schedule.add_link(self.task.id, self.target_id, self.kind, self.lag_days)
