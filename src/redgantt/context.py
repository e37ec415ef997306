"""State shared between the CLI's global options and the commands it runs.

``redgantt -c team.yaml show plan.yaml`` parses ``-c`` in the callback, before
``show`` runs; ``discover_config`` reads it back from here.
"""

from __future__ import annotations

from pathlib import Path


class _CliState:
    def __init__(self) -> None:
        self.config_path: Path | None = None


_state = _CliState()


def get_config_path() -> Path | None:
    """The ``--config`` path of the current invocation, or None to search the working directory."""
    return _state.config_path


def set_config_path(path: Path | None) -> None:
    _state.config_path = path
