"""Exception hierarchy for task document operations.

Parse problems and dependency cycles are *not* exceptions; they are collected as
warnings (see ``ParseWarning`` and ``CycleWarning``) and returned with results.
"""

from __future__ import annotations

from collections.abc import Iterable


class TaskGraphError(Exception):
    """Base class for all taskgraph errors."""


class TaskNotFoundError(TaskGraphError, LookupError):
    """One or more task ids are absent from the document."""

    def __init__(self, task_ids: Iterable[str]) -> None:
        self.task_ids = list(task_ids)
        joined = ", ".join(self.task_ids)
        noun = "Task" if len(self.task_ids) == 1 else "Tasks"
        super().__init__(f"{noun} not found: {joined}")


class InvalidRangeError(TaskGraphError, ValueError):
    """A task id or range expression could not be expanded."""


class UnknownPresetError(TaskGraphError, ValueError):
    """The requested filter preset does not exist."""


class InvalidOptionError(TaskGraphError, ValueError):
    """An option value (format, group-by field, sort key...) is not supported."""


class DocumentIOError(TaskGraphError):
    """The task document could not be read or written."""

    def __init__(self, path: object, action: str, cause: OSError | None = None) -> None:
        self.path = str(path)
        self.action = action
        reason = f": {cause.strerror or cause}" if cause is not None else ""
        super().__init__(f"Cannot {action} task document {self.path}{reason}")
