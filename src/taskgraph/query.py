"""Task filtering: named presets and composable criteria."""

from __future__ import annotations

from dataclasses import dataclass, field

from taskgraph.errors import InvalidOptionError, UnknownPresetError
from taskgraph.graph import DependencyGraph
from taskgraph.tasks.model import Priority, Status, Task


CLEANUP_VOCABULARY: frozenset[str] = frozenset(
    {"cleanup", "refactor", "polish", "docs", "chore", "tech-debt"}
)

SORT_KEYS = ("position", "id", "priority", "dependencies", "phase")
BLOCKER_VALUES = ("blocked", "unblocked")
PHASE_ORDER = ("setup", "foundational", "core", "implementation", "integration", "testing", "polish")


@dataclass
class FilterCriteria:
    """AND-composed task criteria. Empty fields do not constrain."""

    phase: str = ""
    type: str = ""
    status: str = ""
    tag: str = ""
    tags: list[str] = field(default_factory=list)
    priority: str = ""
    blocker: str = ""
    sort_by: str = "position"
    limit: int = 0

    def __post_init__(self) -> None:
        if self.status:
            _check_choice("status", self.status, [s.value for s in Status])
        if self.priority:
            _check_choice("priority", self.priority, [p.value for p in Priority])
        if self.blocker:
            _check_choice("blocker", self.blocker, BLOCKER_VALUES)
        _check_choice("sort_by", self.sort_by, SORT_KEYS)
        if self.limit < 0:
            raise InvalidOptionError(f"limit must be >= 0, got {self.limit}")

    def all_tags(self) -> list[str]:
        return ([self.tag] if self.tag else []) + list(self.tags)

    def matches(self, task: Task, graph: DependencyGraph) -> bool:
        if self.phase and task.phase.lower() != self.phase.lower():
            return False
        if self.type and task.type.lower() != self.type.lower():
            return False
        if self.status and task.status.value != self.status:
            return False
        if self.priority and task.priority.value != self.priority:
            return False
        if any(tag not in task.tags for tag in self.all_tags()):
            return False
        if self.blocker == "blocked" and task.id not in graph.blocked:
            return False
        if self.blocker == "unblocked" and task.id not in graph.ready:
            return False
        return True


def _check_choice(name: str, value: str, allowed) -> None:
    if value not in allowed:
        raise InvalidOptionError(f"Invalid {name} {value!r}. Valid values: {', '.join(allowed)}")


# ── presets ──────────────────────────────────────────────────────────


def _next_preset(graph: DependencyGraph) -> list[Task]:
    candidates = [
        t for t in graph.tasks
        if t.status == Status.PENDING and t.id in graph.ready
    ]
    return sorted(candidates, key=lambda t: (t.priority.rank, t.effort, t.position))


def _type_preset(kind: str):
    """Pending, unblocked tasks of one type, in declaration order."""
    def run(graph: DependencyGraph) -> list[Task]:
        return [
            t for t in graph.tasks
            if t.type.lower() == kind and t.status == Status.PENDING and t.id in graph.ready
        ]
    return run


def _cleanup_preset(graph: DependencyGraph) -> list[Task]:
    return [
        t for t in graph.tasks
        if t.type.lower() in CLEANUP_VOCABULARY
        or any(tag.lower() in CLEANUP_VOCABULARY for tag in t.tags)
    ]


PRESETS = {
    "next": _next_preset,
    "ready": _next_preset,
    "frontend": _type_preset("frontend"),
    "backend": _type_preset("backend"),
    "cleanup": _cleanup_preset,
}


# ── entry point ──────────────────────────────────────────────────────


def filter_tasks(
    graph: DependencyGraph,
    preset: str | None = None,
    criteria: FilterCriteria | None = None,
) -> list[Task]:
    """Return tasks selected by *preset* and/or *criteria*.

    A preset defines its own ordering; criteria applied on top of a preset only
    narrow it (and may re-sort when ``sort_by`` is not ``position``). Without a
    preset, every task is a candidate.
    """
    if preset:
        run = PRESETS.get(preset.lower())
        if run is None:
            raise UnknownPresetError(
                f"Unknown preset {preset!r}. Valid presets: {', '.join(PRESETS)}"
            )
        selected = run(graph)
    else:
        selected = graph.tasks

    if criteria is None:
        return selected

    selected = [t for t in selected if criteria.matches(t, graph)]
    if not preset or criteria.sort_by != "position":
        selected = sort_tasks(selected, criteria.sort_by, graph)
    if criteria.limit:
        selected = selected[:criteria.limit]
    return selected


def sort_tasks(tasks: list[Task], sort_by: str, graph: DependencyGraph) -> list[Task]:
    if sort_by == "position":
        return sorted(tasks, key=lambda t: t.position)
    if sort_by == "id":
        return sorted(tasks, key=lambda t: (t.id, t.position))
    if sort_by == "priority":
        return sorted(tasks, key=lambda t: (t.priority.rank, t.position))
    if sort_by == "phase":
        return sorted(tasks, key=lambda t: (_phase_rank(t.phase), t.position))
    if sort_by == "dependencies":
        rank = {tid: i for i, tid in enumerate(graph.order)}
        tail = len(rank)
        return sorted(tasks, key=lambda t: (rank.get(t.id, tail), t.position))
    raise InvalidOptionError(f"Invalid sort_by {sort_by!r}. Valid values: {', '.join(SORT_KEYS)}")


def _phase_rank(phase: str) -> int:
    try:
        return PHASE_ORDER.index(phase.lower())
    except ValueError:
        return len(PHASE_ORDER)