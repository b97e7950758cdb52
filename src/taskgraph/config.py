"""Configuration defaults, env vars, and task document resolution."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


DEFAULT_TASK_FILES: tuple[str, ...] = (
    "tasks.md",
    ".dincoder/tasks.md",
    "specs/tasks.md",
)


@dataclass
class Config:
    """Runtime configuration shared by the CLI and the operations facade."""

    # Document location
    tasks_file: str = ""
    workspace: str = ""

    # Output
    label_width: int = 40
    search_limit: int = 10
    chart_width: int = 30

    def __post_init__(self) -> None:
        if not self.tasks_file:
            self.tasks_file = os.environ.get("TASKGRAPH_TASKS_FILE", "")
        if not self.workspace:
            self.workspace = os.environ.get("TASKGRAPH_WORKSPACE", "")


def resolve_tasks_path(cfg: Config) -> Path:
    """Return the task document path for *cfg*.

    An explicit ``tasks_file`` wins. Otherwise the first existing entry of
    ``DEFAULT_TASK_FILES`` under the workspace (cwd when unset) is used, falling
    back to ``<workspace>/tasks.md``.
    """
    if cfg.tasks_file:
        return Path(cfg.tasks_file).expanduser()

    base = Path(cfg.workspace).expanduser() if cfg.workspace else Path.cwd()
    for name in DEFAULT_TASK_FILES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return base / DEFAULT_TASK_FILES[0]
