"""Render a dependency graph as Mermaid, Graphviz DOT, or plain text.

All formats read the same ``DependencyGraph`` so node states (completed, ready,
blocked, cycle) and the critical path agree across outputs. Edges are drawn
from dependency to dependent.
"""

from __future__ import annotations

from dataclasses import dataclass

from taskgraph.errors import InvalidOptionError
from taskgraph.graph import DependencyGraph
from taskgraph.tasks.model import Status, Task

FORMATS = ("mermaid", "dot", "ascii")
FORMAT_ALIASES = {"graphviz": "dot", "text": "ascii"}

COLORS = {
    "completed": ("#c8e6c9", "#388e3c"),
    "ready": ("#bbdefb", "#1976d2"),
    "blocked": ("#e0e0e0", "#666666"),
    "cycle": ("#ffcdd2", "#c62828"),
}
GLYPHS = {"completed": "✓", "ready": "○", "blocked": "✗", "cycle": "↻"}
IN_PROGRESS_GLYPH = "~"


@dataclass
class RenderOptions:
    include_completed: bool = True
    group_by_phase: bool = False
    highlight_critical_path: bool = True
    label_width: int = 40


def render(graph: DependencyGraph, fmt: str = "mermaid", options: RenderOptions | None = None) -> str:
    fmt = FORMAT_ALIASES.get(fmt.lower(), fmt.lower())
    if fmt not in FORMATS:
        raise InvalidOptionError(f"Unsupported format {fmt!r}. Valid formats: {', '.join(FORMATS)}")
    opts = options or RenderOptions()
    if fmt == "mermaid":
        return render_mermaid(graph, opts)
    if fmt == "dot":
        return render_dot(graph, opts)
    return render_ascii(graph, opts)


# ── shared projection ────────────────────────────────────────────────


def _visible(graph: DependencyGraph, opts: RenderOptions) -> list[Task]:
    return [t for t in graph.tasks if opts.include_completed or not t.completed]


def _edges(graph: DependencyGraph, shown: set[str]) -> list[tuple[str, str]]:
    """``(dependency, dependent)`` pairs between shown nodes, in declaration order."""
    return [
        (dep, tid)
        for tid, deps in graph.edges.items()
        if tid in shown
        for dep in deps
        if dep in shown
    ]


def _cycle_edges(graph: DependencyGraph) -> set[tuple[str, str]]:
    """``(dependency, dependent)`` pairs whose ends share a looping component."""
    component = {tid: i for i, members in enumerate(graph.components) for tid in members}
    return {
        (dep, tid)
        for tid, deps in graph.edges.items()
        if tid in component
        for dep in deps
        if component.get(dep) == component[tid]
    }


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[:width].rstrip() + "..."


def _by_phase(tasks: list[Task]) -> dict[str, list[Task]]:
    groups: dict[str, list[Task]] = {}
    for t in tasks:
        groups.setdefault(t.phase or "default", []).append(t)
    return groups


# ── Mermaid ──────────────────────────────────────────────────────────


def _mermaid_escape(text: str) -> str:
    return text.replace('"', "#quot;").replace("[", "#91;").replace("]", "#93;")


def _mermaid_id(text: str) -> str:
    return "".join(ch if ch.isalnum() else "_" for ch in text)


def render_mermaid(graph: DependencyGraph, opts: RenderOptions) -> str:
    tasks = _visible(graph, opts)
    shown = {t.id for t in tasks}
    critical = graph.critical_edges() if opts.highlight_critical_path else set()
    cyclic = _cycle_edges(graph)

    out = ["flowchart TD"]
    for state, (fill, stroke) in COLORS.items():
        out.append(f"  classDef {state} fill:{fill},stroke:{stroke},stroke-width:2px")
    out.append("  classDef critical stroke:#e65100,stroke-width:4px")
    out.append("")

    def node(t: Task, indent: str) -> str:
        label = _mermaid_escape(_truncate(f"{t.id}: {t.description}", opts.label_width))
        return f'{indent}{t.id}["{label}"]:::{graph.state(t.id)}'

    if opts.group_by_phase:
        for phase, members in _by_phase(tasks).items():
            out.append(f'  subgraph {_mermaid_id(phase)}["{_mermaid_escape(phase)}"]')
            out.extend(node(t, "    ") for t in members)
            out.append("  end")
    else:
        out.extend(node(t, "  ") for t in tasks)

    styled: list[tuple[int, str]] = []
    for i, (dep, tid) in enumerate(_edges(graph, shown)):
        arrow = "==>" if (dep, tid) in critical else "-->"
        out.append(f"  {dep} {arrow} {tid}")
        if (dep, tid) in cyclic:
            styled.append((i, "stroke:#c62828,stroke-width:2px"))
    for i, style in styled:
        out.append(f"  linkStyle {i} {style}")

    on_path = [tid for tid in graph.critical_path() if tid in shown] if critical else []
    if on_path:
        out.append(f"  class {','.join(on_path)} critical")
    return "\n".join(out) + "\n"


# ── Graphviz DOT ─────────────────────────────────────────────────────


def _dot_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def render_dot(graph: DependencyGraph, opts: RenderOptions) -> str:
    tasks = _visible(graph, opts)
    shown = {t.id for t in tasks}
    critical = graph.critical_edges() if opts.highlight_critical_path else set()
    on_path = set(graph.critical_path()) if critical else set()
    cyclic = _cycle_edges(graph)

    out = [
        "digraph tasks {",
        "  rankdir=LR;",
        '  node [shape=box, style="rounded,filled", fontname="Helvetica"];',
        "",
    ]

    def node(t: Task, indent: str) -> str:
        state = graph.state(t.id)
        fill, stroke = COLORS[state]
        label = _dot_quote(_truncate(f"{t.id}: {t.description}", opts.label_width))
        width = ", penwidth=3" if t.id in on_path else ""
        return (
            f'{indent}{_dot_quote(t.id)} [label={label}, fillcolor="{fill}", '
            f'color="{stroke}", class="{state}"{width}];'
        )

    if opts.group_by_phase:
        for i, (phase, members) in enumerate(_by_phase(tasks).items()):
            out.append(f"  subgraph cluster_{i} {{")
            out.append(f"    label={_dot_quote(phase)};")
            out.extend(node(t, "    ") for t in members)
            out.append("  }")
    else:
        out.extend(node(t, "  ") for t in tasks)
    out.append("")

    for dep, tid in _edges(graph, shown):
        attrs = []
        if (dep, tid) in cyclic:
            attrs.append('color="#c62828"')
        if (dep, tid) in critical:
            attrs.append("penwidth=3")
        suffix = f" [{', '.join(attrs)}]" if attrs else ""
        out.append(f"  {_dot_quote(dep)} -> {_dot_quote(tid)}{suffix};")

    out.append("}")
    return "\n".join(out) + "\n"


# ── ASCII ────────────────────────────────────────────────────────────


def _glyph(graph: DependencyGraph, t: Task) -> str:
    state = graph.state(t.id)
    if t.status == Status.IN_PROGRESS and state == "ready":
        return IN_PROGRESS_GLYPH
    return GLYPHS[state]


def render_ascii(graph: DependencyGraph, opts: RenderOptions) -> str:
    """Indented listing in topological order; indent = dependency level."""
    tasks = _visible(graph, opts)
    shown = {t.id for t in tasks}
    on_path = set(graph.critical_path()) if opts.highlight_critical_path else set()

    level: dict[str, int] = {}
    for tid in graph.order:
        deps = [d for d in graph.edges.get(tid, []) if d in level]
        level[tid] = 1 + max((level[d] for d in deps), default=-1)

    def row(t: Task, indent: int) -> str:
        mark = " *" if t.id in on_path else ""
        desc = _truncate(t.description, opts.label_width)
        return f"{'  ' * indent}{_glyph(graph, t)} {t.id} {desc}{mark}".rstrip()

    out = ["Task dependency order:", ""]
    listed = [tid for tid in graph.order if tid in shown]
    for tid in listed:
        out.append(row(graph.nodes[tid], level[tid]))

    placed = set(listed)
    rest = [t for t in tasks if t.id not in placed]
    if rest:
        out += ["", "Cycles (unordered):"]
        out.extend(row(t, 1) for t in rest)
        for cycle in graph.cycles:
            out.append("  " + " -> ".join(cycle + cycle[:1]))

    legend = "Legend: ✓ completed  ○ ready  ~ in progress  ✗ blocked  ↻ cycle"
    if on_path:
        legend += "  * critical path"
    out += ["", legend]
    return "\n".join(out) + "\n"
