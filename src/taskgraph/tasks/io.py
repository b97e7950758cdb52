"""Read and write task documents on disk."""

from __future__ import annotations

from pathlib import Path

from taskgraph import log
from taskgraph.errors import DocumentIOError
from taskgraph.io_utils import read_text, write_text_atomic
from taskgraph.tasks.model import TaskDocument
from taskgraph.tasks.parser import parse


def read_document(path: Path) -> str:
    try:
        text = read_text(path)
    except FileNotFoundError as exc:
        raise DocumentIOError(path, "find", exc) from exc
    except (OSError, UnicodeDecodeError) as exc:
        cause = exc if isinstance(exc, OSError) else None
        raise DocumentIOError(path, "read", cause) from exc
    log.debug(f"Read {len(text)} chars from {path}")
    return text


def load_task_document(path: Path) -> TaskDocument:
    """Read and parse the document at *path*. Parse warnings are attached."""
    doc = parse(read_document(path))
    log.debug(f"Parsed {len(doc.tasks)} tasks ({len(doc.warnings)} warnings) from {path}")
    return doc


def save_task_document(path: Path, doc: TaskDocument) -> None:
    """Atomically replace *path* with the serialized document."""
    try:
        write_text_atomic(path, doc.render())
    except OSError as exc:
        raise DocumentIOError(path, "write", exc) from exc
    log.debug(f"Wrote {path}")
