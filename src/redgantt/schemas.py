"""Pydantic schemas for schedule YAML files."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, field_validator


class TaskSchema(BaseModel):
    """Schema for one task entry."""

    name: str = ""
    duration: int = Field(default=1, ge=1)
    start_min: int = Field(default=0, ge=0)  # Earliest allowed start, in days from the epoch
    preds: list[str] = Field(default_factory=list)  # "pred[:lag[:kind]]" entries

    @field_validator("preds", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        """Accept a single entry or numeric ids."""
        if v is None:
            return []
        if isinstance(v, list):
            return [str(item) for item in v]  # type: ignore[misc]
        return [str(v)]

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> str:
        return "" if v is None else str(v)


class MetadataSchema(BaseModel):
    """Schema for the metadata section."""

    title: str | None = None
    epoch: date | None = None  # Date of day 0
    project_id: int | str | None = None  # Redmine project the tasks came from


class ScheduleFileSchema(BaseModel):
    """Schema for the whole schedule file."""

    metadata: MetadataSchema = Field(default_factory=MetadataSchema)
    tasks: dict[str, TaskSchema] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("tasks", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> Any:
        """YAML reads unquoted ids such as 12 as numbers; task ids are strings."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            return v
        tasks: dict[str, Any] = {}
        for key, value in v.items():  # type: ignore[misc]
            task_id = str(key)  # type: ignore[has-type]
            if task_id in tasks:
                raise ValueError(f"Duplicate task id: {task_id}")
            tasks[task_id] = {} if value is None else value
        return tasks
