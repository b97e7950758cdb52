"""taskgraph CLI: query and update a markdown task checklist.

Installed as the ``taskgraph`` console_script.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click
from rich.table import Table
from rich.text import Text

from taskgraph import __version__
from taskgraph.config import Config, resolve_tasks_path
from taskgraph.errors import TaskGraphError


CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


def _path(ctx: click.Context) -> Path:
    cfg: Config = ctx.obj
    return resolve_tasks_path(cfg)


def _emit_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _fail(exc: TaskGraphError) -> None:
    from taskgraph import log as glog

    glog.error(str(exc))
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("-f", "--file", "tasks_file", default="", help="Task document (default: tasks.md in workspace)")
@click.option("-w", "--workspace", default="", help="Directory searched for the task document")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
@click.version_option(__version__, prog_name="taskgraph")
@click.pass_context
def main(ctx: click.Context, tasks_file: str, workspace: str, verbose: bool) -> None:
    """taskgraph: dependency-aware task checklists.

    Every command re-reads the task document; nothing is cached between runs.

    \b
    EXAMPLES:
      taskgraph filter next                 # what can I start now?
      taskgraph search autentication        # typo-tolerant search
      taskgraph stats --charts              # progress report
      taskgraph visualize --format dot      # Graphviz output
      taskgraph tick T001                   # mark one task done
      taskgraph tick-range T001-T005 T010   # mark several tasks done
    """
    from taskgraph import log as glog

    glog.set_verbose(verbose)
    ctx.obj = Config(tasks_file=tasks_file, workspace=workspace)


# ── queries ──────────────────────────────────────────────────────────


@main.command("filter", context_settings=CONTEXT_SETTINGS)
@click.argument("preset", required=False)
@click.option("--phase", default="", help="Match phase")
@click.option("--type", "type_", default="", help="Match type (frontend, backend, ...)")
@click.option("--status", default="", help="pending, in_progress or completed")
@click.option("--tag", "tags", multiple=True, help="Required tag (repeatable)")
@click.option("--priority", default="", help="high, medium or low")
@click.option("--blocker", default="", help="blocked or unblocked")
@click.option("--sort", "sort_by", default="position", help="position, id, priority, dependencies or phase")
@click.option("--limit", type=int, default=0, help="Max results (0 = all)")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
@click.pass_context
def filter_cmd(
    ctx: click.Context,
    preset: str | None,
    phase: str,
    type_: str,
    status: str,
    tags: tuple[str, ...],
    priority: str,
    blocker: str,
    sort_by: str,
    limit: int,
    as_json: bool,
) -> None:
    """List tasks matching PRESET (next, ready, frontend, backend, cleanup) and/or criteria."""
    from taskgraph import operations
    from taskgraph.query import FilterCriteria

    try:
        criteria = FilterCriteria(
            phase=phase, type=type_, status=status, tags=list(tags),
            priority=priority, blocker=blocker, sort_by=sort_by, limit=limit,
        )
        result = operations.filter_tasks(_path(ctx), preset=preset, criteria=criteria)
    except TaskGraphError as exc:
        _fail(exc)
        return

    if as_json:
        _emit_json(result.to_dict())
        return
    _print_tasks(result.value)


@main.command(context_settings=CONTEXT_SETTINGS)
@click.argument("query")
@click.option("--limit", type=int, default=None, help="Max results (default 10, max 100)")
@click.option("--max-distance", type=float, default=None, help="Drop fuzzy hits farther than this (0..1)")
@click.option("--field", "fields", multiple=True,
              type=click.Choice(["description", "phase", "type", "tags", "all"]),
              help="Field to search (repeatable, default: description and tags)")
@click.option("--case-sensitive", is_flag=True, help="Match case exactly")
@click.option("--regex", is_flag=True, help="Treat QUERY as a regular expression")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    limit: int | None,
    max_distance: float | None,
    fields: tuple[str, ...],
    case_sensitive: bool,
    regex: bool,
    as_json: bool,
) -> None:
    """Search tasks by text or pattern, tolerating typos."""
    from taskgraph import log as glog
    from taskgraph import operations

    cfg: Config = ctx.obj
    try:
        result = operations.search_tasks(
            _path(ctx), query,
            limit=cfg.search_limit if limit is None else limit,
            max_distance=max_distance,
            fields=fields,
            case_sensitive=case_sensitive,
            regex=regex,
        )
    except TaskGraphError as exc:
        _fail(exc)
        return

    if as_json:
        _emit_json(result.to_dict())
        return
    if not result.value:
        glog.info("No tasks match.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Score", justify="right")
    table.add_column("Description")
    table.add_column("Field")
    table.add_column("Context")
    for hit in result.value:
        table.add_row(
            Text(hit.task.id), f"{hit.score}%", Text(hit.task.description),
            hit.field, Text(hit.context),
        )
    glog.console.print(table)


@main.command(context_settings=CONTEXT_SETTINGS)
@click.option("--group-by", "group_by", multiple=True,
              type=click.Choice(["phase", "type", "priority", "status"]),
              help="Grouping field (repeatable, default: all)")
@click.option("--charts", is_flag=True, help="Include text bar charts")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
@click.pass_context
def stats(ctx: click.Context, group_by: tuple[str, ...], charts: bool, as_json: bool) -> None:
    """Completion, readiness and per-group counts."""
    from taskgraph import operations
    from taskgraph.stats import GROUP_FIELDS, format_report

    cfg: Config = ctx.obj
    try:
        result = operations.task_stats(
            _path(ctx), group_by=group_by or GROUP_FIELDS,
            include_charts=charts, chart_width=cfg.chart_width,
        )
    except TaskGraphError as exc:
        _fail(exc)
        return

    if as_json:
        _emit_json(result.to_dict())
        return
    click.echo(format_report(result.value))


@main.command(context_settings=CONTEXT_SETTINGS)
@click.option("--format", "fmt", default="mermaid",
              type=click.Choice(["mermaid", "dot", "graphviz", "ascii"]), help="Output format")
@click.option("--no-completed", is_flag=True, help="Hide completed tasks")
@click.option("--by-phase", is_flag=True, help="Group nodes by phase")
@click.option("--no-critical-path", is_flag=True, help="Do not highlight the critical path")
@click.pass_context
def visualize(ctx: click.Context, fmt: str, no_completed: bool, by_phase: bool, no_critical_path: bool) -> None:
    """Render the dependency graph."""
    from taskgraph import operations
    from taskgraph.render import RenderOptions

    cfg: Config = ctx.obj
    options = RenderOptions(
        include_completed=not no_completed,
        group_by_phase=by_phase,
        highlight_critical_path=not no_critical_path,
        label_width=cfg.label_width,
    )
    try:
        result = operations.visualize(_path(ctx), fmt, options)
    except TaskGraphError as exc:
        _fail(exc)
        return
    click.echo(result.value, nl=False)


@main.command(context_settings=CONTEXT_SETTINGS)
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
@click.pass_context
def check(ctx: click.Context, as_json: bool) -> None:
    """Report parse warnings and dependency cycles. Exits 1 on cycles."""
    from taskgraph import log as glog
    from taskgraph import operations

    try:
        result = operations.check(_path(ctx))
    except TaskGraphError as exc:
        _fail(exc)
        return

    graph = result.value
    if as_json:
        _emit_json(result.to_dict())
    else:
        for tid in graph.nodes:
            if tid in graph.blocked:
                glog.info(f"{tid} blocked: {graph.explain_block(tid)}")
        if not result.messages:
            glog.success(f"{len(graph.nodes)} tasks, no problems found")
        else:
            glog.info(f"{len(graph.nodes)} tasks, {len(result.messages)} problem(s)")
    if result.cycles:
        sys.exit(1)


# ── mutations ────────────────────────────────────────────────────────


@main.command(context_settings=CONTEXT_SETTINGS)
@click.argument("task_id")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
@click.pass_context
def tick(ctx: click.Context, task_id: str, as_json: bool) -> None:
    """Mark TASK_ID completed (no-op if it already is)."""
    from taskgraph import log as glog
    from taskgraph import operations

    try:
        result = operations.tick(_path(ctx), task_id)
    except TaskGraphError as exc:
        _fail(exc)
        return

    if as_json:
        _emit_json(result.to_dict())
    elif result.value.changed:
        glog.success(f"{task_id} completed")
    else:
        glog.info(f"{task_id} was already completed")


@main.command("tick-range", context_settings=CONTEXT_SETTINGS)
@click.argument("specs", nargs=-1, required=True)
@click.option("--strict", is_flag=True, help="Fail without changes if any id is missing")
@click.option("--json", "as_json", is_flag=True, help="Emit JSON")
@click.pass_context
def tick_range(ctx: click.Context, specs: tuple[str, ...], strict: bool, as_json: bool) -> None:
    """Mark several tasks completed: ids, ranges (T001-T005) or a mix."""
    from taskgraph import log as glog
    from taskgraph import operations

    items = [part for spec in specs for part in spec.split(",")]
    try:
        result = operations.tick_range(_path(ctx), items, strict=strict)
    except TaskGraphError as exc:
        _fail(exc)
        return

    batch = result.value
    if as_json:
        _emit_json(result.to_dict())
    else:
        if batch.completed:
            glog.success(f"Completed: {', '.join(batch.completed)}")
        if batch.skipped:
            glog.info(f"Already completed: {', '.join(batch.skipped)}")
        if batch.failed:
            glog.error(f"Not found: {', '.join(batch.failed)}")
    if batch.failed:
        sys.exit(1)


# ── output helpers ───────────────────────────────────────────────────


def _print_tasks(tasks: list) -> None:
    from taskgraph import log as glog

    if not tasks:
        glog.info("No tasks match.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("")
    table.add_column("ID")
    table.add_column("Description")
    table.add_column("Priority")
    table.add_column("Effort", justify="right")
    table.add_column("Depends on")
    for t in tasks:
        mark = {"completed": "[x]", "in_progress": "[~]"}.get(t.status.value, "[ ]")
        table.add_row(
            Text(mark),
            Text(t.id),
            Text(t.description),
            t.priority.value,
            str(t.effort),
            Text(", ".join(t.depends_on)),
        )
    glog.console.print(table)
