"""Command-line interface for redgantt."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer

from . import context
from .config import RedganttConfig, discover_config
from .dates import dates_from_timing
from .exceptions import RedganttError
from .graph import LinkChange
from .loader import ScheduleDocument, ScheduleMetadata, load_schedule, save_schedule
from .logger import setup_logger
from .models import LinkKind
from .redmine_client import RedmineClient, RedmineError
from .redmine_sync import (
    RedmineSyncError,
    SyncedSchedule,
    link_and_push,
    pull_schedule,
    push_dates,
    unlink_and_push,
)
from .samples import sample_schedule

app = typer.Typer(
    name="redgantt",
    help="Critical path scheduling for Redmine issues and WBS plans",
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity level: 0=silent (default), 1=show changes, 2=show all checks, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to config file (default: redgantt_config.yaml)",
        ),
    ] = None,
) -> None:
    """Global options for redgantt commands."""
    setup_logger(verbose)
    context.set_config_path(config)


@contextmanager
def _reported_errors() -> Iterator[None]:
    """Turn package errors into an ``Error:`` line on stderr and exit code 1."""
    try:
        yield
    except (RedganttError, FileNotFoundError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _config() -> RedganttConfig:
    return discover_config()


def _load(file: Path, config: RedganttConfig) -> ScheduleDocument:
    return load_schedule(file, config.scheduler)


def _client(config: RedganttConfig) -> RedmineClient:
    if config.redmine is None:
        return RedmineClient()
    return RedmineClient(
        config.redmine.base_url,
        timeout_seconds=config.redmine.timeout_seconds,
        verify_ssl=config.redmine.verify_ssl,
        page_size=config.redmine.page_size,
    )


def _default_project(config: RedganttConfig) -> int | str:
    if config.redmine is None or config.redmine.project_id is None:
        raise RedmineError("No project given: use --project or set redmine.project_id in the config")
    return config.redmine.project_id


def _display_schedule(document: ScheduleDocument, *, with_dates: bool) -> None:
    schedule = document.schedule
    epoch = document.metadata.epoch
    if with_dates and epoch is None:
        raise RedmineSyncError("Schedule file has no metadata.epoch; cannot show dates")

    header = f"{'ID':<8} {'Name':<28} {'Dur':>4} {'ES':>4} {'EF':>4} {'LS':>4} {'LF':>4} {'Slack':>5}"
    if with_dates:
        header += f"  {'Start':<10}  {'Due':<10}"
    typer.echo(header)
    typer.echo("-" * len(header))

    for task in schedule.tasks:
        timing = schedule.timing(task.id)
        marker = " *" if timing.is_critical else ""
        line = (
            f"{task.id:<8} {task.name[:28]:<28} {task.duration:>4} {timing.es:>4} {timing.ef:>4} "
            f"{timing.ls:>4} {timing.lf:>4} {timing.slack:>5}"
        )
        if with_dates and epoch is not None:
            start, due = dates_from_timing(epoch, timing.es, task.duration)
            line += f"  {start.isoformat():<10}  {due.isoformat():<10}"
        typer.echo(line + marker)

    typer.echo("")
    typer.echo(f"Project finish: day {schedule.project_finish}")


@app.command()
def show(
    file: Annotated[Path, typer.Argument(help="Path to the schedule YAML file")],
    dates: Annotated[
        bool, typer.Option("--dates", help="Also show calendar dates (needs metadata.epoch)")
    ] = False,
) -> None:
    """Show ES/EF/LS/LF and slack for every task. Critical tasks are marked with *."""
    with _reported_errors():
        config = _config()
        document = _load(file, config)
        _display_schedule(document, with_dates=dates)


@app.command()
def critical(
    file: Annotated[Path, typer.Argument(help="Path to the schedule YAML file")],
) -> None:
    """List the critical tasks in topological order."""
    with _reported_errors():
        document = _load(file, _config())
        schedule = document.schedule
        for task_id in schedule.critical_path():
            typer.echo(f"{task_id}\t{schedule.task(task_id).name}")


@app.command()
def link(  # noqa: PLR0913 - CLI command needs multiple options
    file: Annotated[Path, typer.Argument(help="Path to the schedule YAML file")],
    successor: Annotated[str, typer.Argument(help="Task that depends on PREDECESSOR")],
    predecessor: Annotated[str, typer.Argument(help="Task that must come first")],
    *,
    kind: Annotated[
        str | None, typer.Option("--kind", "-k", help="Link kind: FS, SS, FF or SF")
    ] = None,
    lag: Annotated[
        int | None, typer.Option("--lag", help="Lag in days (may be negative)")
    ] = None,
    push: Annotated[
        bool,
        typer.Option("--push", help="Also create the 'precedes' relation in Redmine (FS only)"),
    ] = False,
) -> None:
    """Add a dependency link; cycles are rejected and the file is left unchanged."""
    with _reported_errors():
        config = _config()
        document = _load(file, config)

        if push:
            if kind is not None and LinkKind.parse(kind) != LinkKind.FS:
                raise RedmineSyncError("Only finish-to-start links can be pushed to Redmine")
            synced = SyncedSchedule.from_document(document)
            try:
                change = link_and_push(
                    _client(config),
                    synced,
                    successor,
                    predecessor,
                    config.scheduler.default_lag_days if lag is None else lag,
                )
            except RedmineSyncError:
                save_schedule(file, document)
                raise
        else:
            change = document.schedule.add_link(successor, predecessor, kind, lag)

        if change == LinkChange.UNCHANGED:
            typer.echo(f"Link {predecessor} -> {successor} already exists")
            return
        save_schedule(file, document)
        verb = "Added" if change == LinkChange.ADDED else "Updated"
        typer.echo(
            f"{verb} link {predecessor} -> {successor}; "
            f"project finish: day {document.schedule.project_finish}"
        )


@app.command()
def unlink(
    file: Annotated[Path, typer.Argument(help="Path to the schedule YAML file")],
    successor: Annotated[str, typer.Argument(help="Dependent task")],
    predecessor: Annotated[str, typer.Argument(help="Predecessor task")],
    push: Annotated[
        bool, typer.Option("--push", help="Also delete the matching relation in Redmine")
    ] = False,
) -> None:
    """Remove the link from PREDECESSOR to SUCCESSOR."""
    with _reported_errors():
        config = _config()
        document = _load(file, config)
        if push:
            synced = SyncedSchedule.from_document(document)
            try:
                removed = unlink_and_push(_client(config), synced, successor, predecessor)
            except RedmineSyncError:
                save_schedule(file, document)
                raise
        else:
            removed = document.schedule.remove_link(successor, predecessor)
        if not removed:
            typer.echo(f"Error: No link {predecessor} -> {successor}", err=True)
            raise typer.Exit(1)
        save_schedule(file, document)
        typer.echo(f"Removed link {predecessor} -> {successor}")


@app.command()
def constrain(
    file: Annotated[Path, typer.Argument(help="Path to the schedule YAML file")],
    task_id: Annotated[str, typer.Argument(help="Task to constrain")],
    start: Annotated[int, typer.Argument(help="Earliest allowed start (day offset)")],
) -> None:
    """Set a "not before" constraint on a task, as a drag-move commit does."""
    with _reported_errors():
        document = _load(file, _config())
        document.schedule.apply_start_constraint(task_id, start)
        save_schedule(file, document)
        timing = document.schedule.timing(task_id)
        typer.echo(f"{task_id}: ES={timing.es} EF={timing.ef} slack={timing.slack}")


@app.command()
def resize(
    file: Annotated[Path, typer.Argument(help="Path to the schedule YAML file")],
    task_id: Annotated[str, typer.Argument(help="Task to resize")],
    duration: Annotated[int, typer.Argument(help="New duration in days (minimum 1)")],
) -> None:
    """Change a task's duration."""
    with _reported_errors():
        document = _load(file, _config())
        document.schedule.set_duration(task_id, duration)
        save_schedule(file, document)
        task = document.schedule.task(task_id)
        typer.echo(
            f"{task_id}: duration={task.duration}; "
            f"project finish: day {document.schedule.project_finish}"
        )


@app.command()
def sample(
    output: Annotated[Path, typer.Argument(help="Where to write the sample schedule")],
    force: Annotated[bool, typer.Option("--force", "-f", help="Overwrite an existing file")] = False,
) -> None:
    """Write the built-in sample WBS plan."""
    if output.exists() and not force:
        typer.echo(f"Error: {output} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(1)
    with _reported_errors():
        schedule = sample_schedule(_config().scheduler)
        save_schedule(output, ScheduleDocument(schedule, ScheduleMetadata(title="Sample WBS")))
    typer.echo(f"Sample schedule written to {output}")


@app.command()
def validate() -> None:
    """Check the Redmine URL and API key."""
    with _reported_errors():
        config = _config()
        client = _client(config)
        if not client.validate_connection():
            raise RedmineError(f"Unexpected response from {client.base_url}/users/current.json")
    typer.echo(f"Connected to {client.base_url}")


@app.command()
def projects() -> None:
    """List the Redmine projects visible to the API key."""
    with _reported_errors():
        for project in _client(_config()).list_projects():
            typer.echo(f"{project.id}\t{project.identifier}\t{project.name}")


@app.command()
def pull(
    output: Annotated[Path, typer.Argument(help="Schedule YAML file to write")],
    project: Annotated[
        str | None,
        typer.Option(
            "--project", "-p", help="Redmine project id or identifier (default: redmine.project_id)"
        ),
    ] = None,
) -> None:
    """Build a schedule from a project's dated issues and their relations."""
    with _reported_errors():
        config = _config()
        project_id = project if project is not None else _default_project(config)
        synced = pull_schedule(_client(config), project_id, config.scheduler)
        save_schedule(output, synced.to_document(project_id))

    typer.echo(
        f"Pulled {len(synced.schedule)} issues into {output} "
        f"(epoch {synced.epoch.isoformat()}, finish day {synced.schedule.project_finish})"
    )
    if synced.skipped:
        typer.echo("\nSkipped relations:", err=True)
        for note in synced.skipped:
            typer.echo(f"  - {note}", err=True)


@app.command()
def push(
    file: Annotated[Path, typer.Argument(help="Schedule YAML file pulled from Redmine")],
    task_ids: Annotated[
        list[str] | None, typer.Argument(help="Issue ids to push (default: all)")
    ] = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Show the dates without updating Redmine")
    ] = False,
) -> None:
    """Write scheduled start and due dates back to Redmine."""
    with _reported_errors():
        config = _config()
        synced = SyncedSchedule.from_document(_load(file, config))
        ids = task_ids or [task.id for task in synced.schedule.tasks]

        if dry_run:
            for task_id in ids:
                task = synced.schedule.task(task_id)
                start, due = dates_from_timing(
                    synced.epoch, synced.schedule.timing(task_id).es, task.duration
                )
                typer.echo(f"#{task_id}\t{start.isoformat()}\t{due.isoformat()}")
            return

        pushed = push_dates(_client(config), synced, ids)
        for task_id, start, due in pushed:
            typer.echo(f"#{task_id}\t{start.isoformat()}\t{due.isoformat()}")
    typer.echo(f"Updated {len(pushed)} issue(s)")


def main() -> int:
    """Main entry point."""
    app()
    return 0


if __name__ == "__main__":
    main()
