"""Loading and saving schedule YAML files."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError
from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap
from ruamel.yaml.resolver import VersionedResolver
from ruamel.yaml.scalarstring import DoubleQuotedScalarString

from .exceptions import InvalidArgumentError, ParseError, ValidationError
from .logger import get_logger
from .models import DependencyLink, Task
from .schedule import Schedule
from .scheduler import SchedulingConfig
from .schemas import ScheduleFileSchema

logger = get_logger()

_MANAGED_TASK_FIELDS = ("name", "duration", "start_min", "preds")

_INT_TAG = "tag:yaml.org,2002:int"
_FLOAT_TAG = "tag:yaml.org,2002:float"
_MERGE_TAG = "tag:yaml.org,2002:merge"

# YAML 1.1 integers minus the base-60 form, which turns the link "10:1" into 601
_INT_PATTERN = re.compile(
    r"""^(?:[-+]?0b[0-1_]+
    |[-+]?0[0-7_]+
    |[-+]?(?:0|[1-9][0-9_]*)
    |[-+]?0x[0-9a-fA-F_]+)$""",
    re.X,
)


class ScheduleLoader(yaml.SafeLoader):
    """SafeLoader that keeps WBS ids and link entries as written.

    Plain scalars are never read as floats, so ``1.1`` and ``1.10`` stay two
    different ids, and ``10:1`` stays a link instead of a base-60 integer.
    Mapping keys that are equal once converted to strings are rejected.
    """

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        keys = [
            str(self.construct_object(key_node, deep=deep))  # type: ignore[no-untyped-call]
            for key_node, _ in node.value
            if key_node.tag != _MERGE_TAG
        ]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            raise InvalidArgumentError(
                f"Duplicate key(s) {', '.join(duplicates)} at line {node.start_mark.line + 1}"
            )
        return super().construct_mapping(node, deep=deep)  # type: ignore[no-untyped-call]


ScheduleLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in (_INT_TAG, _FLOAT_TAG)]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
ScheduleLoader.add_implicit_resolver(_INT_TAG, _INT_PATTERN, list("-+0123456789"))


class _NoFloatResolver(VersionedResolver):
    """Round-trip resolver that reads float-looking scalars such as 1.10 as strings."""

    def add_version_implicit_resolver(self, version: Any, tag: Any, regexp: Any, first: Any) -> None:
        if tag != _FLOAT_TAG:
            super().add_version_implicit_resolver(version, tag, regexp, first)


@dataclass
class ScheduleMetadata:
    """File-level metadata that travels with a schedule."""

    title: str | None = None
    epoch: date | None = None
    project_id: int | str | None = None


@dataclass
class ScheduleDocument:
    """A schedule together with the metadata of the file it came from."""

    schedule: Schedule
    metadata: ScheduleMetadata = field(default_factory=ScheduleMetadata)


def load_schedule(path: Path | str, config: SchedulingConfig | None = None) -> ScheduleDocument:
    """Load, validate and schedule a YAML schedule file.

    Raises:
        ParseError: If the file is missing or is not valid YAML
        ValidationError: If the content does not match the schema
        CycleError: If the links in the file form a cycle
        UnknownTaskError: If a link names a task that is not in the file
        InvalidArgumentError: If a mapping repeats a key, such as a task id
    """
    path = Path(path)
    if not path.exists():
        raise ParseError(f"File not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.load(f, Loader=ScheduleLoader)  # noqa: S506
    except yaml.YAMLError as e:
        raise ParseError(f"Failed to parse YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError("YAML must contain a dictionary at the root level")

    return parse_schedule_data(data, config)  # type: ignore[arg-type]


def parse_schedule_data(
    data: dict[str, Any], config: SchedulingConfig | None = None
) -> ScheduleDocument:
    """Build a ScheduleDocument from already-loaded YAML data."""
    try:
        schema = ScheduleFileSchema(**data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid schedule file structure: {e}") from e

    tasks: list[Task] = []
    for task_id, entry in schema.tasks.items():
        try:
            links = [DependencyLink.parse(text) for text in entry.preds]
        except InvalidArgumentError as e:
            raise ValidationError(f"Task {task_id}: {e}") from e
        tasks.append(
            Task(
                id=task_id,
                name=entry.name,
                duration=entry.duration,
                earliest_allowed_start=entry.start_min,
                links=links,
            )
        )

    metadata = ScheduleMetadata(
        title=schema.metadata.title,
        epoch=schema.metadata.epoch,
        project_id=schema.metadata.project_id,
    )
    schedule = Schedule(tasks, config)
    logger.checks(f"Loaded {len(schedule)} tasks")
    return ScheduleDocument(schedule=schedule, metadata=metadata)


def _quoted_if_ambiguous(text: str) -> str:
    """Quote ids and links that a plain YAML reader would not take as strings (3, 1.10, 10:1)."""
    try:
        plain = yaml.safe_load(text)
    except yaml.YAMLError:
        plain = None
    return text if isinstance(plain, str) else DoubleQuotedScalarString(text)


def _task_fields(task: Task) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if task.name:
        fields["name"] = task.name
    fields["duration"] = task.duration
    if task.earliest_allowed_start:
        fields["start_min"] = task.earliest_allowed_start
    if task.links:
        fields["preds"] = [_quoted_if_ambiguous(str(link)) for link in task.links]
    return fields


def _metadata_fields(metadata: ScheduleMetadata) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if metadata.title is not None:
        fields["title"] = metadata.title
    if metadata.epoch is not None:
        fields["epoch"] = metadata.epoch
    if metadata.project_id is not None:
        fields["project_id"] = metadata.project_id
    return fields


def _update_changed(target: Any, fields: dict[str, Any]) -> None:
    """Assign only values that differ so untouched keys keep their comments and quoting."""
    for name, value in fields.items():
        if name not in target or target[name] != value:
            target[name] = value


def save_schedule(path: Path | str, document: ScheduleDocument) -> None:
    """Write a schedule to YAML.

    An existing file is updated in place: comments, key order and keys that
    redgantt does not manage are preserved. Tasks no longer in the schedule are
    removed from the file.
    """
    path = Path(path)
    yaml_rt = YAML()
    yaml_rt.Resolver = _NoFloatResolver  # type: ignore[assignment]
    yaml_rt.preserve_quotes = True  # type: ignore[assignment]

    data: Any = None
    if path.exists():
        with path.open(encoding="utf-8") as f:
            data = yaml_rt.load(f)  # type: ignore[no-untyped-call]
    if not isinstance(data, dict):
        data = CommentedMap()

    metadata_fields = _metadata_fields(document.metadata)
    if metadata_fields:
        if not isinstance(data.get("metadata"), dict):
            data["metadata"] = CommentedMap()
        _update_changed(data["metadata"], metadata_fields)

    if not isinstance(data.get("tasks"), dict):
        data["tasks"] = CommentedMap()
    section = data["tasks"]

    existing_keys = {str(key): key for key in section}
    wanted = {task.id for task in document.schedule.tasks}
    for id_str, key in existing_keys.items():
        if id_str not in wanted:
            del section[key]

    for task in document.schedule.tasks:
        fields = _task_fields(task)
        key = existing_keys.get(task.id)
        if key is None:
            section[_quoted_if_ambiguous(task.id)] = CommentedMap(fields)
            continue
        entry = section[key]
        if not isinstance(entry, dict):
            section[key] = CommentedMap(fields)
            continue
        _update_changed(entry, fields)
        for name in _MANAGED_TASK_FIELDS:
            if name not in fields and name in entry:
                del entry[name]

    with path.open("w", encoding="utf-8") as f:
        yaml_rt.dump(data, f)  # type: ignore[no-untyped-call]
    logger.changes(f"Wrote {len(document.schedule)} tasks to {path}")
