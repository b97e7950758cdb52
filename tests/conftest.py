"""Shared fixtures for taskgraph tests.

File handling in tests:
- Use tmp_path for any directory or file creation so tests are isolated and cleaned up.
- Write documents as UTF-8 bytes so line endings reach the parser untouched.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from taskgraph.tasks.model import Priority, Status, Task


SAMPLE_DOC = """\
# Feature: Auth

Some prose that is not a task.

## Phase 1: Setup

- [x] T001 Initialize project structure (phase: setup, type: devops, effort: 2)
- [ ] T002 Implement authentication flow (phase: core, type: backend, depends: T001, priority: high, effort: 5, tags: auth, security)
- [ ] T003 Build login form (phase: core, type: frontend, depends: T002, effort: 3)
- [ ] T004 Write API docs (phase: polish, type: docs, priority: low)
- [~] T005 Refactor config loader (phase: polish, type: backend, depends: T001, tags: refactor)

<!-- trailing comment -->
"""


def _make_task(
    id: str,
    description: str = "",
    status: Status = Status.PENDING,
    depends_on: list[str] | None = None,
    priority: Priority = Priority.MEDIUM,
    effort: int = 1,
    phase: str = "",
    type: str = "",
    tags: list[str] | None = None,
    position: int = 0,
) -> Task:
    return Task(
        id=id,
        description=description or f"Task {id}",
        status=status,
        depends_on=depends_on or [],
        priority=priority,
        effort=effort,
        phase=phase,
        type=type,
        tags=tags or [],
        position=position,
    )


@pytest.fixture
def make_task():
    """Factory fixture that creates Task instances."""
    return _make_task


@pytest.fixture
def make_tasks():
    """Build a task list from ``(id, kwargs)`` pairs with positions assigned."""

    def _build(*specs: tuple[str, dict]) -> list[Task]:
        return [_make_task(tid, position=i, **kwargs) for i, (tid, kwargs) in enumerate(specs)]

    return _build


@pytest.fixture
def write_doc(tmp_path: Path):
    """Write document text to ``tmp_path/tasks.md`` and return the path."""

    def _write(text: str, name: str = "tasks.md") -> Path:
        path = tmp_path / name
        path.write_bytes(text.encode("utf-8"))
        return path

    return _write


@pytest.fixture
def sample_path(write_doc) -> Path:
    return write_doc(SAMPLE_DOC)


@pytest.fixture
def sample_doc() -> str:
    return SAMPLE_DOC
