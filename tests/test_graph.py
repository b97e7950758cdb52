"""Tests for taskgraph.graph: readiness, cycles, depth and critical path."""

from __future__ import annotations

from taskgraph.graph import build_graph, find_cycles
from taskgraph.tasks.model import Status
from taskgraph.tasks.parser import parse


DONE = {"status": Status.COMPLETED}


# ═══════════════════════════════════════════════════════════════════
#  Readiness
# ═══════════════════════════════════════════════════════════════════


class TestReadiness:
    """Ready = open task whose known dependencies are all completed."""

    def test_independent_tasks_all_ready(self, make_tasks):
        graph = build_graph(make_tasks(("A1", {}), ("B1", {}), ("C1", {})))
        assert graph.ready == {"A1", "B1", "C1"}
        assert graph.blocked == set()

    def test_dependent_task_not_ready(self, make_tasks):
        graph = build_graph(make_tasks(("T1", {}), ("T2", {"depends_on": ["T1"]})))
        assert graph.ready == {"T1"}
        assert graph.blocked == {"T2"}

    def test_completed_dependency_unblocks(self, make_tasks):
        graph = build_graph(make_tasks(("T1", DONE), ("T2", {"depends_on": ["T1"]})))
        assert graph.ready == {"T2"}

    def test_completed_tasks_neither_ready_nor_blocked(self, make_tasks):
        graph = build_graph(make_tasks(("T1", DONE)))
        assert graph.ready == set() and graph.blocked == set()

    def test_dangling_dependency_blocks(self, make_tasks):
        graph = build_graph(make_tasks(("T2", {"depends_on": ["T9"]})))
        assert graph.blocked == {"T2"}
        assert graph.dangling == {"T2": ["T9"]}
        assert graph.unmet_dependencies("T2") == ["T9"]

    def test_in_progress_dependency_is_unmet(self, make_tasks):
        graph = build_graph(make_tasks(
            ("T1", {"status": Status.IN_PROGRESS}),
            ("T2", {"depends_on": ["T1"]}),
        ))
        assert "T1" in graph.ready
        assert "T2" in graph.blocked

    def test_ready_set_never_has_unmet_dependencies(self, sample_doc):
        doc = parse(sample_doc)
        graph = build_graph(doc.tasks)
        for tid in graph.ready:
            task = graph.nodes[tid]
            assert all(d in graph.nodes and graph.nodes[d].completed for d in task.depends_on)

    def test_duplicate_ids_first_wins(self, make_task):
        first = make_task("T1", position=0)
        second = make_task("T1", status=Status.COMPLETED, position=1)
        graph = build_graph([first, second])
        assert graph.nodes["T1"] is first

    def test_explain_block(self, make_tasks):
        graph = build_graph(make_tasks(
            ("T1", {}),
            ("T2", {"depends_on": ["T1", "T8"]}),
        ))
        reason = graph.explain_block("T2")
        assert "T1 (pending)" in reason
        assert "unknown: T8" in reason


# ═══════════════════════════════════════════════════════════════════
#  Cycles
# ═══════════════════════════════════════════════════════════════════


class TestCycles:
    def test_two_node_cycle(self, make_tasks):
        graph = build_graph(make_tasks(
            ("T1", {"depends_on": ["T2"]}),
            ("T2", {"depends_on": ["T1"]}),
        ))
        assert graph.cycles == [["T1", "T2"]]
        assert graph.blocked == {"T1", "T2"}
        assert graph.ready == set()

    def test_self_dependency(self, make_tasks):
        graph = build_graph(make_tasks(("T1", {"depends_on": ["T1"]})))
        assert graph.cycles == [["T1"]]
        assert "T1" in graph.blocked

    def test_cycle_members_are_mutually_dependent(self, make_tasks):
        tasks = make_tasks(
            ("T1", {}),
            ("T2", {"depends_on": ["T4"]}),
            ("T3", {"depends_on": ["T2"]}),
            ("T4", {"depends_on": ["T3", "T1"]}),
        )
        graph = build_graph(tasks)
        assert len(graph.cycles) == 1
        cycle = graph.cycles[0]
        assert set(cycle) == {"T2", "T3", "T4"}
        assert cycle[0] == "T2"
        for i, tid in enumerate(cycle):
            assert cycle[(i + 1) % len(cycle)] in graph.nodes[tid].depends_on

    def test_cycle_member_blocked_even_if_deps_completed(self, make_tasks):
        graph = build_graph(make_tasks(
            ("T1", {"depends_on": ["T2"]}),
            ("T2", {"depends_on": ["T1"], "status": Status.COMPLETED}),
        ))
        assert graph.blocked == {"T1"}
        assert graph.state("T1") == "cycle"
        assert graph.state("T2") == "completed"

    def test_cycle_warning_message(self, make_tasks):
        graph = build_graph(make_tasks(
            ("T1", {"depends_on": ["T2"]}),
            ("T2", {"depends_on": ["T1"]}),
        ))
        assert graph.cycle_warnings[0].message == "Dependency cycle: T1 -> T2 -> T1"

    def test_node_entering_cycle_through_finished_member(self, make_tasks):
        """C sits on C -> B -> A -> C even though DFS reaches B before C."""
        graph = build_graph(make_tasks(
            ("A", {"depends_on": ["B", "C"]}),
            ("B", {"depends_on": ["A"]}),
            ("C", {"depends_on": ["B"]}),
        ))
        assert graph.components == [["A", "B", "C"]]
        assert graph.cycles == [["A", "B"]]
        assert graph.cycle_members == {"A", "B", "C"}
        assert graph.state("C") == "cycle"
        assert graph.depth == {}
        assert graph.critical_path() == []
        assert graph.cycle_through("C") == ["C", "B", "A"]
        assert "cycle: C -> B -> A -> C" in graph.explain_block("C")
        assert "also entangled: C" in graph.cycle_warnings[0].message

    def test_separate_components_reported_separately(self, make_tasks):
        graph = build_graph(make_tasks(
            ("T1", {"depends_on": ["T2"]}),
            ("T2", {"depends_on": ["T1"]}),
            ("T3", {"depends_on": ["T1"]}),
            ("T4", {"depends_on": ["T5"]}),
            ("T5", {"depends_on": ["T4"]}),
        ))
        assert graph.components == [["T1", "T2"], ["T4", "T5"]]
        assert graph.state("T3") == "blocked"
        assert graph.depth == {"T3": 1}

    def test_blocked_reasons_in_dict(self, make_tasks):
        graph = build_graph(make_tasks(
            ("T1", {}),
            ("T2", {"depends_on": ["T1", "T8"]}),
        ))
        assert graph.to_dict()["blocked_reasons"] == {"T2": "dependsOn: T1 (pending) unknown: T8"}

    def test_find_cycles_acyclic(self, make_tasks):
        graph = build_graph(make_tasks(("T1", {}), ("T2", {"depends_on": ["T1"]})))
        assert find_cycles(graph.nodes, graph.edges) == []

    def test_long_chain_does_not_recurse(self, make_tasks):
        specs = [("T0", {})] + [(f"T{i}", {"depends_on": [f"T{i - 1}"]}) for i in range(1, 3000)]
        graph = build_graph(make_tasks(*specs))
        assert graph.cycles == []
        assert graph.depth["T2999"] == 3000


# ═══════════════════════════════════════════════════════════════════
#  Depth and critical path
# ═══════════════════════════════════════════════════════════════════


class TestDepth:
    def test_depth_is_max_cumulative_effort(self, make_tasks):
        graph = build_graph(make_tasks(
            ("T1", {"effort": 2}),
            ("T2", {"effort": 5}),
            ("T3", {"effort": 1, "depends_on": ["T1", "T2"]}),
        ))
        assert graph.depth == {"T1": 2, "T2": 5, "T3": 6}

    def test_critical_path(self, sample_doc):
        graph = build_graph(parse(sample_doc).tasks)
        assert graph.critical_path() == ["T001", "T002", "T003"]
        assert graph.depth["T003"] == 10
        assert graph.critical_edges() == {("T001", "T002"), ("T002", "T003")}

    def test_cycle_members_excluded_from_depth(self, make_tasks):
        graph = build_graph(make_tasks(
            ("T1", {"depends_on": ["T2"]}),
            ("T2", {"depends_on": ["T1"]}),
            ("T3", {"depends_on": ["T1"], "effort": 4}),
        ))
        assert "T1" not in graph.depth and "T2" not in graph.depth
        assert graph.depth["T3"] == 4
        assert graph.order == ["T3"]

    def test_topological_order_ties_by_position(self, make_tasks):
        graph = build_graph(make_tasks(
            ("T3", {"depends_on": ["T1"]}),
            ("T2", {}),
            ("T1", {}),
        ))
        assert graph.order == ["T2", "T1", "T3"]

    def test_empty_graph(self):
        graph = build_graph([])
        assert graph.critical_path() == []
        assert graph.to_dict()["ready"] == []
