"""Line grammar for checklist task documents.

Every physical line becomes either a ``TaskLine`` or an ``OtherLine``::

    - [ ] T001 Description (phase: setup, depends: T000, tags: api, auth)
    - [x] T002: Description
    * [~] T003 Description in progress

The trailing parenthesised group is a metadata block only when it contains a
``key: value`` pair. Parsing never raises: problems become ``ParseWarning``s.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from taskgraph.tasks.model import (
    MARKERS,
    OtherLine,
    ParseWarning,
    Priority,
    Task,
    TaskDocument,
    TaskLine,
)

TASK_RE = re.compile(
    r"^(?P<lead>[ \t]*(?:[-*+][ \t]+)?)"
    r"\[(?P<mark>[ xX~])\]"
    r"[ \t]+(?P<id>[A-Za-z]+\d+):?"
    r"(?:[ \t]+(?P<rest>.*?))?[ \t]*$"
)
KEY_RE = re.compile(r"^[a-z][a-z0-9_-]*$")
UNTERMINATED_RE = re.compile(r"\((?P<body>[^()]*:[^()]*)$")
LIST_SPLIT_RE = re.compile(r"[\s,]+")
LINE_RE = re.compile(r"[^\n]*\n|[^\n]+")

KNOWN_KEYS = ("phase", "type", "depends", "priority", "effort", "tags")
LIST_KEYS = ("depends", "tags")

Warn = Callable[[str], None]


class MalformedBlock(ValueError):
    """Raised internally when a metadata block cannot be parsed."""


def parse(document: str) -> TaskDocument:
    """Parse *document* into ordered lines, unique tasks and warnings."""
    doc = TaskDocument()
    first_seen: dict[str, int] = {}

    # Only "\n" ends a line; other Unicode separators stay inside it.
    for number, text in enumerate(LINE_RE.findall(document), start=1):
        body = text.rstrip("\r\n")
        match = TASK_RE.match(body)
        if not match:
            doc.lines.append(OtherLine(text=text, number=number))
            continue

        task_id = match["id"]

        def warn(message: str, _n: int = number, _id: str = task_id) -> None:
            doc.warnings.append(ParseWarning(line=_n, message=message, task_id=_id))

        task = Task(
            id=task_id,
            status=MARKERS[match["mark"]],
            position=len(doc.tasks),
            line=number,
        )
        _apply_rest(task, match["rest"] or "", warn)

        line = TaskLine(text=text, number=number, task=task, marker_at=match.start("mark"))
        if task_id in first_seen:
            line.duplicate = True
            warn(f"Duplicate task id {task_id} (first defined on line {first_seen[task_id]}); ignored")
        else:
            first_seen[task_id] = number
            doc.tasks.append(task)
        doc.lines.append(line)

    return doc


def parse_line(text: str) -> Task | None:
    """Parse a single line; return ``None`` when it is not a task line."""
    doc = parse(text.rstrip("\r\n") + "\n")
    return doc.tasks[0] if doc.tasks else None


# ── description / metadata split ─────────────────────────────────────


def split_metadata(rest: str) -> tuple[str, str | None, bool]:
    """Split *rest* into ``(description, block_body, unterminated)``.

    ``block_body`` is ``None`` when there is no metadata block.
    """
    rest = rest.strip()
    if rest.endswith(")"):
        start = _matching_open(rest)
        if start is not None:
            inner = rest[start + 1:-1]
            if ":" in inner:
                return rest[:start].rstrip(), inner, False
        return rest, None, False

    m = UNTERMINATED_RE.search(rest)
    if m:
        return rest[:m.start()].rstrip(), m["body"], True
    return rest, None, False


def _matching_open(text: str) -> int | None:
    depth = 0
    for i in range(len(text) - 1, -1, -1):
        ch = text[i]
        if ch == ")":
            depth += 1
        elif ch == "(":
            depth -= 1
            if depth == 0:
                return i
    return None


def _apply_rest(task: Task, rest: str, warn: Warn) -> None:
    description, block, unterminated = split_metadata(rest)
    task.description = description
    if block is None:
        return
    if unterminated:
        warn("Unterminated metadata block; using defaults")
        return
    try:
        fields, unknown = parse_block(block)
    except MalformedBlock as exc:
        warn(f"Malformed metadata block ({exc}); using defaults")
        return
    _apply_fields(task, fields, unknown, warn)


def parse_block(block: str) -> tuple[dict[str, list[str]], list[tuple[str, str]]]:
    """Parse a metadata block body into known fields and unknown pairs.

    Comma-separated segments without a key continue the most recent list key
    (``depends`` or ``tags``); anywhere else they make the block malformed.
    """
    fields: dict[str, list[str]] = {}
    unknown: list[tuple[str, str]] = []
    list_key: str | None = None

    for raw in block.split(","):
        segment = raw.strip()
        if not segment:
            continue
        key, sep, value = segment.partition(":")
        key = key.strip().lower()
        value = value.strip()

        if not sep:
            if list_key is None:
                raise MalformedBlock(f"expected 'key: value', got {segment!r}")
            fields[list_key].extend(v for v in LIST_SPLIT_RE.split(segment) if v)
            continue

        if not KEY_RE.match(key):
            raise MalformedBlock(f"invalid key {key!r}")

        if key in LIST_KEYS:
            fields.setdefault(key, []).extend(v for v in LIST_SPLIT_RE.split(value) if v)
            list_key = key
        elif key in KNOWN_KEYS:
            fields[key] = [value]
            list_key = None
        else:
            unknown.append((key, value))
            list_key = None

    return fields, unknown


def _apply_fields(
    task: Task,
    fields: dict[str, list[str]],
    unknown: list[tuple[str, str]],
    warn: Warn,
) -> None:
    if "phase" in fields:
        task.phase = fields["phase"][0]
    if "type" in fields:
        task.type = fields["type"][0]
    if "depends" in fields:
        task.depends_on = _dedupe(fields["depends"])
    if "tags" in fields:
        task.tags = _dedupe(fields["tags"])

    if "priority" in fields:
        raw = fields["priority"][0].lower()
        try:
            task.priority = Priority(raw)
        except ValueError:
            warn(f"Invalid priority {raw!r}; using {Priority.MEDIUM.value}")

    if "effort" in fields:
        raw = fields["effort"][0]
        if raw.isascii() and raw.isdigit():
            task.effort = int(raw)
        else:
            warn(f"Invalid effort {raw!r}; using 1")

    for key, value in unknown:
        tag = f"{key}:{value}" if value else key
        warn(f"Unknown metadata key {key!r}; kept as tag {tag!r}")
        if tag not in task.tags:
            task.tags.append(tag)


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return ordered
