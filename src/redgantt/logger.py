"""Verbosity-levelled logging for redgantt.

Three levels sit on top of plain errors:

- ``changes`` (verbosity 1): committed edits, links added or removed, upstream pushes
- ``checks`` (verbosity 2): cycle guard walks, skipped relations, recompute summaries
- ``debug`` (verbosity 3): per-task values from the forward and backward passes

Errors are always shown; a cycle found after the link guard has run is one.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

CHANGES_LEVEL = 25
CHECKS_LEVEL = 15

logging.addLevelName(CHANGES_LEVEL, "CHANGES")
logging.addLevelName(CHECKS_LEVEL, "CHECKS")

VERBOSITY_SILENT = 0
VERBOSITY_CHANGES = 1
VERBOSITY_CHECKS = 2
VERBOSITY_DEBUG = 3

_LEVELS = {
    VERBOSITY_SILENT: logging.ERROR,
    VERBOSITY_CHANGES: CHANGES_LEVEL,
    VERBOSITY_CHECKS: CHECKS_LEVEL,
    VERBOSITY_DEBUG: logging.DEBUG,
}

LOGGER_NAME = "redgantt"


class RedganttLogger(logging.Logger):
    """Package logger with one method per schedule-event verbosity."""

    def changes(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Report an edit that changed the schedule or Redmine."""
        if self.isEnabledFor(CHANGES_LEVEL):
            self._log(CHANGES_LEVEL, msg, args, **kwargs)

    def checks(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Report a guard check, a skipped relation or a recompute."""
        if self.isEnabledFor(CHECKS_LEVEL):
            self._log(CHECKS_LEVEL, msg, args, **kwargs)


def verbosity_to_level(verbosity: int) -> int:
    """Map ``--verbose`` 0-3 to a logging level; anything else shows errors only."""
    return _LEVELS.get(verbosity, logging.ERROR)


def get_logger() -> RedganttLogger:
    logging.setLoggerClass(RedganttLogger)
    logger = logging.getLogger(LOGGER_NAME)
    assert isinstance(logger, RedganttLogger)
    return logger


def setup_logger(verbosity: int, stream: TextIO | None = None) -> None:
    """Send redgantt messages at ``verbosity`` and above to ``stream``.

    The CLI calls this once per invocation; repeated calls replace the handler,
    so messages are never printed twice.

    Args:
        verbosity: 0=errors only, 1=changes, 2=checks, 3=debug
        stream: Output stream, defaults to sys.stderr so stdout stays parseable
    """
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(verbosity_to_level(verbosity))

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def reset_logger() -> None:
    """Drop the CLI handler and hand records back to the root logger at error level."""
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.ERROR)
    logger.propagate = True


def checks_enabled() -> bool:
    """True when recompute summaries are worth building."""
    return get_logger().isEnabledFor(CHECKS_LEVEL)


def debug_enabled() -> bool:
    """True when the per-task CPM values are printed after each compute."""
    return get_logger().isEnabledFor(logging.DEBUG)
