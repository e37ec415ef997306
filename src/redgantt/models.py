"""Data models for redgantt: link kinds, dependency links and tasks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import InvalidArgumentError

MIN_DURATION = 1
MIN_START = 0


class LinkKind(str, Enum):
    """Which endpoint of the predecessor constrains which endpoint of the successor."""

    FS = "FS"  # finish-to-start
    SS = "SS"  # start-to-start
    FF = "FF"  # finish-to-finish
    SF = "SF"  # start-to-finish

    @classmethod
    def parse(cls, value: str | LinkKind) -> LinkKind:
        """Parse a kind name case-insensitively."""
        if isinstance(value, LinkKind):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as e:
            valid = ", ".join(k.value for k in cls)
            raise InvalidArgumentError(f"Invalid link kind '{value}'. Valid kinds: {valid}") from e


_LINK_RE = re.compile(r"^(?P<pred>[^:]+?)\s*(?::\s*(?P<lag>[^:]*?)\s*(?::\s*(?P<kind>[^:]*?)\s*)?)?$")


@dataclass(frozen=True)
class DependencyLink:
    """A typed, lagged edge stored on its successor task.

    Only the predecessor id is kept; the successor is the task that owns the link.
    A negative lag means the successor may overlap the predecessor.
    """

    predecessor_id: str
    lag_days: int = 0
    kind: LinkKind = LinkKind.FS

    @classmethod
    def parse(cls, link_str: str) -> DependencyLink:
        """Parse ``pred[:lag[:kind]]`` text.

        Examples:
        - "12" - FS link on task 12, no lag
        - "12:3" - FS link with a 3 day lag
        - "1.2:-2:SS" - start-to-start link with a 2 day lead
        """
        match = _LINK_RE.match(str(link_str).strip())
        if not match or not match.group("pred"):
            raise InvalidArgumentError(f"Invalid dependency link: '{link_str}'")

        lag_text = match.group("lag")
        lag = 0
        if lag_text:
            try:
                lag = int(lag_text)
            except ValueError as e:
                raise InvalidArgumentError(
                    f"Invalid lag '{lag_text}' in dependency link '{link_str}'"
                ) from e

        kind_text = match.group("kind")
        kind = LinkKind.parse(kind_text) if kind_text else LinkKind.FS
        return cls(predecessor_id=match.group("pred"), lag_days=lag, kind=kind)

    def __str__(self) -> str:
        if self.kind == LinkKind.FS:
            if self.lag_days == 0:
                return self.predecessor_id
            return f"{self.predecessor_id}:{self.lag_days}"
        return f"{self.predecessor_id}:{self.lag_days}:{self.kind.value}"


def _require_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{name} must be an integer number of days, got {value!r}")
    return value


class Task:
    """A schedulable unit.

    ``duration`` is clamped to at least one day and ``earliest_allowed_start`` to
    day 0 on every write. Computed CPM values are not stored here; they live in
    the schedule's result.
    """

    def __init__(
        self,
        id: str,  # noqa: A002 - matches the field name used everywhere else
        duration: int = MIN_DURATION,
        earliest_allowed_start: int = MIN_START,
        name: str = "",
        links: list[DependencyLink] | None = None,
    ):
        if not str(id).strip():
            raise InvalidArgumentError("Task id must not be empty")
        self.id = str(id)
        self.name = name
        self.links: list[DependencyLink] = list(links) if links else []
        self._duration = MIN_DURATION
        self._earliest_allowed_start = MIN_START
        self.duration = duration
        self.earliest_allowed_start = earliest_allowed_start

    @property
    def duration(self) -> int:
        return self._duration

    @duration.setter
    def duration(self, value: int) -> None:
        self._duration = max(MIN_DURATION, _require_int("duration", value))

    @property
    def earliest_allowed_start(self) -> int:
        return self._earliest_allowed_start

    @earliest_allowed_start.setter
    def earliest_allowed_start(self, value: int) -> None:
        self._earliest_allowed_start = max(
            MIN_START, _require_int("earliest_allowed_start", value)
        )

    @property
    def predecessor_ids(self) -> list[str]:
        return [link.predecessor_id for link in self.links]

    def link_to(self, predecessor_id: str) -> DependencyLink | None:
        """Return the link on ``predecessor_id``, if any."""
        for link in self.links:
            if link.predecessor_id == predecessor_id:
                return link
        return None

    def __repr__(self) -> str:
        preds = ", ".join(str(link) for link in self.links)
        return (
            f"Task(id={self.id!r}, duration={self.duration}, "
            f"earliest_allowed_start={self.earliest_allowed_start}, preds=[{preds}])"
        )
