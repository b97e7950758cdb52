"""Status mutations on a parsed task document.

Only the checkbox character of an affected line changes; every other byte of
the document is preserved. Functions here work on a ``TaskDocument`` in
memory; ``taskgraph.operations`` does the read/write around them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from taskgraph.errors import InvalidRangeError, TaskNotFoundError
from taskgraph.tasks.model import TaskDocument

MAX_RANGE_SIZE = 1000

ID_RE = re.compile(r"^([A-Za-z]+)(\d+)$")
RANGE_RE = re.compile(r"^([A-Za-z]+)(\d+)\s*-\s*([A-Za-z]+)(\d+)$")


class Outcome(str, Enum):
    COMPLETED = "completed"
    ALREADY_COMPLETED = "already_completed"
    NOT_FOUND = "not_found"


@dataclass
class TickResult:
    id: str
    outcome: Outcome

    @property
    def ok(self) -> bool:
        return self.outcome != Outcome.NOT_FOUND

    @property
    def changed(self) -> bool:
        return self.outcome == Outcome.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "outcome": self.outcome.value}


@dataclass
class BatchResult:
    results: list[TickResult] = field(default_factory=list)

    def ids(self, outcome: Outcome) -> list[str]:
        return [r.id for r in self.results if r.outcome == outcome]

    @property
    def completed(self) -> list[str]:
        return self.ids(Outcome.COMPLETED)

    @property
    def skipped(self) -> list[str]:
        return self.ids(Outcome.ALREADY_COMPLETED)

    @property
    def failed(self) -> list[str]:
        return self.ids(Outcome.NOT_FOUND)

    @property
    def changed(self) -> bool:
        return any(r.changed for r in self.results)

    @property
    def partial(self) -> bool:
        """Some ids failed while others succeeded."""
        return bool(self.failed) and any(r.ok for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "completed": self.completed,
            "skipped": self.skipped,
            "failed": self.failed,
            "partial": self.partial,
        }


# ── id expressions ───────────────────────────────────────────────────


def expand_range(expr: str) -> list[str]:
    """Expand ``T001-T005`` into ``T001 .. T005``.

    The prefix and the zero-padding width of the start id are held fixed.
    """
    m = RANGE_RE.match(expr.strip())
    if not m:
        raise InvalidRangeError(f"Invalid range expression: {expr!r}")
    prefix, start_digits, end_prefix, end_digits = m.groups()
    if prefix.upper() != end_prefix.upper():
        raise InvalidRangeError(f"Range endpoints have different prefixes: {expr!r}")

    start, end = int(start_digits), int(end_digits)
    if start > end:
        raise InvalidRangeError(f"Invalid range {expr!r}: start is after end")
    if end - start + 1 > MAX_RANGE_SIZE:
        raise InvalidRangeError(f"Range {expr!r} exceeds {MAX_RANGE_SIZE} ids")

    width = len(start_digits)
    return [f"{prefix}{str(n).zfill(width)}" for n in range(start, end + 1)]


def expand_task_ids(spec: str | list[str] | tuple[str, ...]) -> list[str]:
    """Turn a range, an id, or a list / comma-separated mix of both into ids.

    Duplicates are dropped keeping first-seen order.
    """
    items = spec.split(",") if isinstance(spec, str) else list(spec)
    ids: list[str] = []
    for raw in items:
        item = raw.strip()
        if not item:
            continue
        if "-" in item:
            ids.extend(expand_range(item))
        elif ID_RE.match(item):
            ids.append(item)
        else:
            raise InvalidRangeError(f"Invalid task id: {item!r}")

    if not ids:
        raise InvalidRangeError("No task ids given")

    seen: set[str] = set()
    ordered: list[str] = []
    for i in ids:
        if i in seen:
            continue
        seen.add(i)
        ordered.append(i)
    return ordered


# ── mutations ────────────────────────────────────────────────────────


def _tick_one(doc: TaskDocument, task_id: str) -> TickResult:
    line = doc.task_line(task_id)
    if line is None:
        return TickResult(task_id, Outcome.NOT_FOUND)
    if line.task.completed:
        return TickResult(task_id, Outcome.ALREADY_COMPLETED)
    line.set_completed()
    return TickResult(task_id, Outcome.COMPLETED)


def tick(doc: TaskDocument, task_id: str) -> TickResult:
    """Mark *task_id* completed. Ticking a completed task is a no-op."""
    result = _tick_one(doc, task_id)
    if result.outcome == Outcome.NOT_FOUND:
        raise TaskNotFoundError([task_id])
    return result


def tick_range(
    doc: TaskDocument,
    spec: str | list[str] | tuple[str, ...],
    strict: bool = False,
) -> BatchResult:
    """Tick every id in *spec* independently.

    Missing ids are reported per item. With ``strict`` any missing id raises
    ``TaskNotFoundError`` before the document is touched.
    """
    ids = expand_task_ids(spec)
    if strict:
        missing = [i for i in ids if doc.task_line(i) is None]
        if missing:
            raise TaskNotFoundError(missing)
    return BatchResult([_tick_one(doc, i) for i in ids])
