"""Task and TaskDocument data models used across parsing, queries and mutations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Status(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort key: lower ranks first (high before medium before low)."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}

# Checkbox characters and the status each one means.
MARKERS: dict[str, Status] = {
    " ": Status.PENDING,
    "~": Status.IN_PROGRESS,
    "x": Status.COMPLETED,
    "X": Status.COMPLETED,
}
COMPLETED_MARKER = "x"


@dataclass
class Task:
    id: str
    description: str = ""
    status: Status = Status.PENDING
    phase: str = ""
    type: str = ""
    depends_on: list[str] = field(default_factory=list)
    priority: Priority = Priority.MEDIUM
    effort: int = 1
    tags: list[str] = field(default_factory=list)
    position: int = 0
    line: int = 0

    @property
    def completed(self) -> bool:
        return self.status == Status.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "status": self.status.value,
            "phase": self.phase,
            "type": self.type,
            "depends_on": list(self.depends_on),
            "priority": self.priority.value,
            "effort": self.effort,
            "tags": list(self.tags),
            "position": self.position,
            "line": self.line,
        }


@dataclass
class ParseWarning:
    line: int
    message: str
    task_id: str = ""

    def __str__(self) -> str:
        where = f"line {self.line}"
        if self.task_id:
            where += f" ({self.task_id})"
        return f"{where}: {self.message}"


# ── document lines ───────────────────────────────────────────────────


@dataclass
class OtherLine:
    """Any line that is not a task: headings, prose, blank lines."""

    text: str
    number: int


@dataclass
class TaskLine:
    """A recognised checklist line.

    ``text`` is the raw line including its line ending; ``marker_at`` is the
    offset of the checkbox character inside it.
    """

    text: str
    number: int
    task: Task
    marker_at: int
    duplicate: bool = False

    def set_completed(self) -> None:
        i = self.marker_at
        self.text = self.text[:i] + COMPLETED_MARKER + self.text[i + 1:]
        self.task.status = Status.COMPLETED


DocumentLine = TaskLine | OtherLine


@dataclass
class TaskDocument:
    lines: list[DocumentLine] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)

    def get_task(self, task_id: str) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def task_line(self, task_id: str) -> TaskLine | None:
        """Return the line owning *task_id* (the first occurrence)."""
        for line in self.lines:
            if isinstance(line, TaskLine) and not line.duplicate and line.task.id == task_id:
                return line
        return None

    def render(self) -> str:
        """Serialize back to text; unchanged lines are emitted byte-for-byte."""
        return "".join(line.text for line in self.lines)
