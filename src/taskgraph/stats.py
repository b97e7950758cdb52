"""Progress statistics over a task graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from taskgraph.errors import InvalidOptionError
from taskgraph.graph import DependencyGraph
from taskgraph.tasks.model import Status, Task

GROUP_FIELDS = ("phase", "type", "priority", "status")
UNSPECIFIED = "unspecified"


@dataclass
class Counts:
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0

    def add(self, task: Task) -> None:
        self.total += 1
        if task.status == Status.COMPLETED:
            self.completed += 1
        elif task.status == Status.IN_PROGRESS:
            self.in_progress += 1
        else:
            self.pending += 1

    @property
    def completion_pct(self) -> float:
        return percentage(self.completed, self.total)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "pending": self.pending,
            "in_progress": self.in_progress,
            "completed": self.completed,
            "completion_pct": self.completion_pct,
        }


@dataclass
class StatsReport:
    overall: Counts = field(default_factory=Counts)
    groups: dict[str, dict[str, Counts]] = field(default_factory=dict)
    ready: int = 0
    blocked: int = 0
    blockers: dict[str, list[str]] = field(default_factory=dict)
    cycles: list[list[str]] = field(default_factory=list)
    chart: str = ""

    @property
    def total(self) -> int:
        return self.overall.total

    @property
    def completion_pct(self) -> float:
        return self.overall.completion_pct

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall": self.overall.to_dict(),
            "groups": {
                name: {value: c.to_dict() for value, c in buckets.items()}
                for name, buckets in self.groups.items()
            },
            "ready": self.ready,
            "blocked": self.blocked,
            "blockers": self.blockers,
            "cycles": self.cycles,
            "chart": self.chart,
        }


def percentage(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return round(100 * part / whole, 1)


def _group_value(task: Task, name: str) -> str:
    if name == "priority":
        return task.priority.value
    if name == "status":
        return task.status.value
    return getattr(task, name) or UNSPECIFIED


def stats(
    graph: DependencyGraph,
    group_by: list[str] | tuple[str, ...] = GROUP_FIELDS,
    include_charts: bool = False,
    chart_width: int = 30,
) -> StatsReport:
    """Aggregate counts for *graph*, grouped by each field in *group_by*."""
    for name in group_by:
        if name not in GROUP_FIELDS:
            raise InvalidOptionError(
                f"Invalid group_by field {name!r}. Valid values: {', '.join(GROUP_FIELDS)}"
            )

    report = StatsReport(cycles=[list(c) for c in graph.cycles])
    for name in group_by:
        report.groups[name] = {}

    for task in graph.tasks:
        report.overall.add(task)
        for name in group_by:
            value = _group_value(task, name)
            report.groups[name].setdefault(value, Counts()).add(task)

    report.ready = len(graph.ready)
    report.blocked = len(graph.blocked)
    for task in graph.tasks:
        if task.id in graph.blocked:
            report.blockers[task.id] = graph.unmet_dependencies(task.id)

    if include_charts:
        report.chart = render_chart(report, chart_width)
    return report


def _bar(part: int, whole: int, width: int) -> str:
    filled = round(width * part / whole) if whole else 0
    return "█" * filled + "░" * (width - filled)


def render_chart(report: StatsReport, width: int = 30) -> str:
    """Proportional text bars: overall completion, then each group's share."""
    lines = [
        f"{'completed':<16} {_bar(report.overall.completed, report.total, width)} "
        f"{report.overall.completed}/{report.total} ({report.completion_pct}%)"
    ]
    for name, buckets in report.groups.items():
        lines.append("")
        lines.append(f"by {name}:")
        for value in sorted(buckets):
            c = buckets[value]
            lines.append(
                f"  {value[:14]:<14} {_bar(c.total, report.total, width)} "
                f"{c.total} ({c.completion_pct}% done)"
            )
    return "\n".join(lines)


def format_report(report: StatsReport) -> str:
    """Markdown rendering of *report*."""
    out = ["# Task Statistics", ""]
    if report.total == 0:
        out.append("No tasks found.")
        return "\n".join(out) + "\n"

    o = report.overall
    out += [
        "## Overall Progress",
        "",
        f"- **Total:** {o.total}",
        f"- **Completed:** {o.completed} ({o.completion_pct}%)",
        f"- **In Progress:** {o.in_progress}",
        f"- **Pending:** {o.pending}",
        f"- **Ready:** {report.ready}",
        f"- **Blocked:** {report.blocked}",
        "",
    ]
    if report.chart:
        out += ["```", report.chart, "```", ""]

    for name, buckets in report.groups.items():
        out += [f"## By {name.title()}", ""]
        for value in sorted(buckets):
            c = buckets[value]
            out.append(f"- **{value}:** {c.completed}/{c.total} completed ({c.completion_pct}%)")
        out.append("")

    if report.blockers:
        out += ["## Blocked Tasks", ""]
        for tid, unmet in report.blockers.items():
            detail = ", ".join(unmet) if unmet else "dependency cycle"
            out.append(f"- **{tid}** waiting on: {detail}")
        out.append("")

    if report.cycles:
        out += ["## Cycles", ""]
        for cycle in report.cycles:
            out.append("- " + " -> ".join(cycle + cycle[:1]))
        out.append("")

    return "\n".join(out)
