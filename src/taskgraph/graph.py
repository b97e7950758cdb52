"""Dependency graph over parsed tasks: readiness, cycles, and critical path."""

from __future__ import annotations

import heapq
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from taskgraph.tasks.model import Task


@dataclass
class CycleWarning:
    cycle: list[str]
    members: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        text = "Dependency cycle: " + " -> ".join(self.cycle + self.cycle[:1])
        extra = [tid for tid in self.members if tid not in self.cycle]
        if extra:
            text += f" (also entangled: {', '.join(extra)})"
        return text

    def __str__(self) -> str:
        return self.message


@dataclass
class DependencyGraph:
    """Derived view of a task list. Rebuilt from scratch by ``build_graph``.

    Edges point from a dependent to its dependency (``edges[t]`` lists the known
    ids ``t`` depends on). ``dangling`` holds dependency ids that match no task.

    Usage::

        graph = build_graph(doc.tasks)
        graph.ready          # open tasks whose dependencies are all completed
        graph.blocked        # open tasks that are not ready
        graph.components     # ids of each strongly connected group that loops
        graph.cycles         # one shortest cycle per component
        graph.depth[tid]     # effort of the heaviest chain ending at tid
    """

    nodes: dict[str, Task] = field(default_factory=dict)
    edges: dict[str, list[str]] = field(default_factory=dict)
    dangling: dict[str, list[str]] = field(default_factory=dict)
    ready: set[str] = field(default_factory=set)
    blocked: set[str] = field(default_factory=set)
    components: list[list[str]] = field(default_factory=list)
    cycles: list[list[str]] = field(default_factory=list)
    cycle_members: set[str] = field(default_factory=set)
    depth: dict[str, int] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)

    # ── lookups ──────────────────────────────────────────────────

    @property
    def tasks(self) -> list[Task]:
        return list(self.nodes.values())

    def dependents(self, task_id: str) -> list[str]:
        """Ids that depend directly on *task_id*, in declaration order."""
        return [tid for tid, deps in self.edges.items() if task_id in deps]

    @property
    def cycle_warnings(self) -> list[CycleWarning]:
        return [CycleWarning(list(c), list(m)) for c, m in zip(self.cycles, self.components)]

    def state(self, task_id: str) -> str:
        """One of ``completed``, ``ready``, ``blocked`` or ``cycle``."""
        if self.nodes[task_id].completed:
            return "completed"
        if task_id in self.cycle_members:
            return "cycle"
        return "ready" if task_id in self.ready else "blocked"

    def to_dict(self) -> dict[str, Any]:
        def ordered(ids: set[str]) -> list[str]:
            return [tid for tid in self.nodes if tid in ids]

        blocked = ordered(self.blocked)
        return {
            "ready": ordered(self.ready),
            "blocked": blocked,
            "blocked_reasons": {tid: self.explain_block(tid) for tid in blocked},
            "cycles": [list(c) for c in self.cycles],
            "components": [list(c) for c in self.components],
            "dangling": dict(self.dangling),
            "depth": dict(self.depth),
            "critical_path": self.critical_path(),
        }

    # ── readiness ────────────────────────────────────────────────

    def unmet_dependencies(self, task_id: str) -> list[str]:
        unmet = [d for d in self.edges.get(task_id, []) if not self.nodes[d].completed]
        return unmet + self.dangling.get(task_id, [])

    def cycle_through(self, task_id: str) -> list[str]:
        """Shortest cycle that starts and ends at *task_id*; empty if none."""
        for members in self.components:
            if task_id in members:
                return _shortest_cycle(task_id, set(members), self.edges)
        return []

    def explain_block(self, task_id: str) -> str:
        """Human-readable explanation of why *task_id* is blocked."""
        reasons: list[str] = []

        waiting = [
            f"{d} ({self.nodes[d].status.value})"
            for d in self.edges.get(task_id, [])
            if not self.nodes[d].completed
        ]
        if waiting:
            reasons.append(f"dependsOn: {' '.join(waiting)}")

        missing = self.dangling.get(task_id, [])
        if missing:
            reasons.append(f"unknown: {' '.join(missing)}")

        cycle = self.cycle_through(task_id)
        if cycle:
            reasons.append(f"cycle: {' -> '.join(cycle + cycle[:1])}")

        return " ".join(reasons)

    # ── critical path ────────────────────────────────────────────

    def critical_path(self) -> list[str]:
        """Heaviest effort-weighted chain in the acyclic part, dependencies first."""
        if not self.depth:
            return []
        pos = {tid: t.position for tid, t in self.nodes.items()}
        end = max(self.depth, key=lambda tid: (self.depth[tid], -pos[tid]))

        path = [end]
        current = end
        while True:
            deps = [d for d in self.edges.get(current, []) if d in self.depth]
            if not deps:
                break
            current = max(deps, key=lambda d: (self.depth[d], -pos[d]))
            path.append(current)
        path.reverse()
        return path

    def critical_edges(self) -> set[tuple[str, str]]:
        """``(dependency, dependent)`` pairs along the critical path."""
        path = self.critical_path()
        return set(zip(path, path[1:]))


def build_graph(tasks: list[Task]) -> DependencyGraph:
    """Build a fresh ``DependencyGraph`` for *tasks*.

    Duplicate ids keep their first occurrence. Cycles are reported, never raised.
    """
    graph = DependencyGraph()
    for task in tasks:
        graph.nodes.setdefault(task.id, task)

    for tid, task in graph.nodes.items():
        graph.edges[tid] = [d for d in task.depends_on if d in graph.nodes]
        missing = [d for d in task.depends_on if d not in graph.nodes]
        if missing:
            graph.dangling[tid] = missing

    graph.components = cyclic_components(graph.nodes, graph.edges)
    graph.cycles = [
        _shortest_cycle(members[0], set(members), graph.edges) for members in graph.components
    ]
    graph.cycle_members = {tid for members in graph.components for tid in members}

    for tid, task in graph.nodes.items():
        if task.completed:
            continue
        if tid not in graph.cycle_members and not graph.unmet_dependencies(tid):
            graph.ready.add(tid)
        else:
            graph.blocked.add(tid)

    graph.order, graph.depth = _topological_depth(graph.nodes, graph.edges, graph.cycle_members)
    return graph


def find_cycles(nodes: dict[str, Task], edges: dict[str, list[str]]) -> list[list[str]]:
    """One shortest cycle per looping component, starting at its earliest member."""
    return [_shortest_cycle(m[0], set(m), edges) for m in cyclic_components(nodes, edges)]


def cyclic_components(nodes: dict[str, Task], edges: dict[str, list[str]]) -> list[list[str]]:
    """Strongly connected components that contain a cycle (Tarjan, iterative).

    Every id that can reach itself lands in exactly one component. Members are
    listed in declaration order and components by their earliest member.
    """
    index: dict[str, int] = {}
    low: dict[str, int] = {}
    stack: list[str] = []
    on_stack: set[str] = set()
    found: list[list[str]] = []

    def visit(tid: str) -> None:
        index[tid] = low[tid] = len(index)
        stack.append(tid)
        on_stack.add(tid)

    for root in nodes:
        if root in index:
            continue
        visit(root)
        work = [(root, iter(edges.get(root, [])))]

        while work:
            current, deps = work[-1]
            nxt = next(deps, None)
            if nxt is not None:
                if nxt not in index:
                    visit(nxt)
                    work.append((nxt, iter(edges.get(nxt, []))))
                elif nxt in on_stack:
                    low[current] = min(low[current], index[nxt])
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                low[parent] = min(low[parent], low[current])
            if low[current] != index[current]:
                continue

            members: list[str] = []
            while True:
                tid = stack.pop()
                on_stack.discard(tid)
                members.append(tid)
                if tid == current:
                    break
            if len(members) > 1 or current in edges.get(current, []):
                found.append(sorted(members, key=lambda t: nodes[t].position))

    found.sort(key=lambda m: nodes[m[0]].position)
    return found


def _shortest_cycle(start: str, members: set[str], edges: dict[str, list[str]]) -> list[str]:
    """Breadth-first search inside *members* for the shortest way back to *start*."""
    parent: dict[str, str] = {}
    seen = {start}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for nxt in edges.get(current, []):
            if nxt not in members:
                continue
            if nxt == start:
                path = [current]
                while path[-1] != start:
                    path.append(parent[path[-1]])
                path.reverse()
                return path
            if nxt not in seen:
                seen.add(nxt)
                parent[nxt] = current
                queue.append(nxt)
    return [start]


def _topological_depth(
    nodes: dict[str, Task],
    edges: dict[str, list[str]],
    excluded: set[str],
) -> tuple[list[str], dict[str, int]]:
    """Kahn's algorithm over the graph minus *excluded* ids.

    Returns the processing order (ties broken by declaration position) and, for
    each processed id, the maximum cumulative effort of any chain ending there.
    Edges into excluded ids are ignored.
    """
    deps = {
        tid: [d for d in edges.get(tid, []) if d not in excluded]
        for tid in nodes
        if tid not in excluded
    }
    indegree = {tid: len(ds) for tid, ds in deps.items()}
    dependents: dict[str, list[str]] = {tid: [] for tid in deps}
    for tid, ds in deps.items():
        for d in ds:
            dependents[d].append(tid)

    heap = [(nodes[tid].position, tid) for tid, n in indegree.items() if n == 0]
    heapq.heapify(heap)

    order: list[str] = []
    depth: dict[str, int] = {}
    while heap:
        _, tid = heapq.heappop(heap)
        order.append(tid)
        depth[tid] = nodes[tid].effort + max((depth[d] for d in deps[tid]), default=0)
        for child in dependents[tid]:
            indegree[child] -= 1
            if indegree[child] == 0:
                heapq.heappush(heap, (nodes[child].position, child))

    return order, depth
