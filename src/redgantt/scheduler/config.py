"""Configuration classes for the scheduling engine."""

from enum import Enum

from pydantic import BaseModel, field_validator

from redgantt.models import LinkKind


class CycleCheckMode(str, Enum):
    """How the dependency graph guards new links."""

    DIRECTED = "directed"  # Reject links that close a directed cycle
    CONNECTED = "connected"  # Reject links between tasks that are already connected at all


class SchedulingConfig(BaseModel):
    """Scheduling engine settings.

    ``cycle_check`` defaults to ``directed``: a link is refused only when it would
    close a cycle, so diamonds such as two branches joining at a milestone are
    allowed. ``connected`` refuses any link between tasks that already reach each
    other in either direction, which rules those diamonds out.
    """

    cycle_check: CycleCheckMode = CycleCheckMode.DIRECTED

    # Used for links created without an explicit kind or lag (CLI, Redmine relations)
    default_link_kind: LinkKind = LinkKind.FS
    default_lag_days: int = 0

    @field_validator("default_link_kind", mode="before")
    @classmethod
    def parse_link_kind(cls, v: object) -> LinkKind:
        """Accept lower-case kind names from YAML."""
        return LinkKind.parse(str(v))
