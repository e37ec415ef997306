"""Custom exceptions for redgantt."""

from __future__ import annotations


class RedganttError(Exception):
    """Base exception for all redgantt errors."""

    pass


class ValidationError(RedganttError):
    """Raised when schedule data fails validation."""

    pass


class CycleError(ValidationError):
    """Raised when a dependency would close (or already closes) a cycle.

    ``path`` lists the task ids around the cycle, first and last entry equal.
    """

    def __init__(self, path: list[str], message: str | None = None):
        self.path = list(path)
        super().__init__(message or f"Circular dependency detected: {' -> '.join(self.path)}")


class UnknownTaskError(ValidationError):
    """Raised when a task id is not present in the registry."""

    def __init__(self, task_id: str, message: str | None = None):
        self.task_id = task_id
        super().__init__(message or f"Unknown task: {task_id}")


class InvalidArgumentError(RedganttError, ValueError):
    """Raised when a caller passes a value the operation cannot accept."""

    pass


class ParseError(RedganttError):
    """Raised when a schedule or config file cannot be read."""

    pass
