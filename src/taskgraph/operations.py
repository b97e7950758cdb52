"""Operations exposed to callers: one document read per call, no cached state.

Each function reads the document at *path*, parses it, builds a fresh graph,
computes its answer, and (for ``tick`` / ``tick_range``) writes the document
back atomically. Parse warnings and dependency cycles travel with the result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from taskgraph import log
from taskgraph.graph import CycleWarning, DependencyGraph, build_graph
from taskgraph.mutate import BatchResult, TickResult
from taskgraph.mutate import tick as _tick
from taskgraph.mutate import tick_range as _tick_range
from taskgraph.query import FilterCriteria
from taskgraph.query import filter_tasks as _select
from taskgraph.render import RenderOptions, render
from taskgraph.search import SearchHit, search
from taskgraph.stats import GROUP_FIELDS, StatsReport, stats
from taskgraph.tasks.io import load_task_document, save_task_document
from taskgraph.tasks.model import ParseWarning, Task, TaskDocument


@dataclass
class Result:
    """An operation's value plus the non-fatal conditions found on the way."""

    value: Any
    warnings: list[ParseWarning] = field(default_factory=list)
    cycles: list[CycleWarning] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [str(w) for w in self.warnings] + [c.message for c in self.cycles]

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": _plain(self.value),
            "warnings": [str(w) for w in self.warnings],
            "cycles": [c.cycle for c in self.cycles],
        }


def _plain(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _load(path: Path) -> tuple[TaskDocument, DependencyGraph]:
    doc = load_task_document(path)
    graph = build_graph(doc.tasks)
    for w in doc.warnings:
        log.warn(str(w))
    for c in graph.cycle_warnings:
        log.warn(c.message)
    return doc, graph


def _result(value: Any, doc: TaskDocument, graph: DependencyGraph) -> Result:
    return Result(value=value, warnings=list(doc.warnings), cycles=graph.cycle_warnings)


# ── queries ──────────────────────────────────────────────────────────


def filter_tasks(path: Path, preset: str | None = None, criteria: FilterCriteria | None = None) -> Result:
    """Ordered ``list[Task]`` selected by a preset and/or criteria."""
    doc, graph = _load(path)
    tasks: list[Task] = _select(graph, preset=preset, criteria=criteria)
    log.debug(f"filter preset={preset or '-'} -> {len(tasks)} tasks")
    return _result(tasks, doc, graph)


def search_tasks(
    path: Path,
    query: str,
    limit: int = 10,
    max_distance: float | None = None,
    fields: list[str] | tuple[str, ...] | None = None,
    case_sensitive: bool = False,
    regex: bool = False,
) -> Result:
    """Ranked ``list[SearchHit]``."""
    doc, graph = _load(path)
    hits: list[SearchHit] = search(
        doc.tasks, query, limit=limit, max_distance=max_distance,
        fields=fields, case_sensitive=case_sensitive, regex=regex,
    )
    log.debug(f"search {query!r} -> {len(hits)} hits")
    return _result(hits, doc, graph)


def task_stats(
    path: Path,
    group_by: list[str] | tuple[str, ...] = GROUP_FIELDS,
    include_charts: bool = False,
    chart_width: int = 30,
) -> Result:
    """A ``StatsReport``."""
    doc, graph = _load(path)
    report: StatsReport = stats(graph, group_by=group_by, include_charts=include_charts,
                                chart_width=chart_width)
    return _result(report, doc, graph)


def visualize(path: Path, fmt: str = "mermaid", options: RenderOptions | None = None) -> Result:
    """Rendered diagram text."""
    doc, graph = _load(path)
    return _result(render(graph, fmt, options), doc, graph)


def check(path: Path) -> Result:
    """Parse and graph the document without changing it; value is the graph."""
    doc, graph = _load(path)
    return _result(graph, doc, graph)


# ── mutations ────────────────────────────────────────────────────────


def tick(path: Path, task_id: str) -> Result:
    """Mark one task completed. Raises ``TaskNotFoundError`` for unknown ids."""
    doc, graph = _load(path)
    outcome: TickResult = _tick(doc, task_id)
    if outcome.changed:
        save_task_document(path, doc)
        log.debug(f"Task {task_id}: -> completed")
    else:
        log.debug(f"Task {task_id}: already completed (no-op)")
    return _result(outcome, doc, graph)


def tick_range(path: Path, spec: str | list[str] | tuple[str, ...], strict: bool = False) -> Result:
    """Tick every id in a range / list; per-id outcomes in a ``BatchResult``."""
    doc, graph = _load(path)
    batch: BatchResult = _tick_range(doc, spec, strict=strict)
    if batch.changed:
        save_task_document(path, doc)
    for tid in batch.failed:
        log.warn(f"Task {tid}: not found")
    log.debug(
        f"tick_range: {len(batch.completed)} completed, "
        f"{len(batch.skipped)} skipped, {len(batch.failed)} failed"
    )
    return _result(batch, doc, graph)
