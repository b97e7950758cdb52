"""Tests for taskgraph.render: Mermaid, DOT and ASCII projections."""

from __future__ import annotations

import pytest

from taskgraph.errors import InvalidOptionError
from taskgraph.graph import build_graph
from taskgraph.render import RenderOptions, render
from taskgraph.tasks.parser import parse


@pytest.fixture
def sample_graph(sample_doc):
    return build_graph(parse(sample_doc).tasks)


@pytest.fixture
def cyclic_graph():
    return build_graph(parse(
        "- [ ] T001 A (depends: T002)\n"
        "- [ ] T002 B (depends: T001)\n"
        "- [ ] T003 C\n"
    ).tasks)


class TestMermaid:
    def test_nodes_classes_and_edges(self, sample_graph):
        out = render(sample_graph, "mermaid")
        assert out.startswith("flowchart TD\n")
        assert 'T001["T001: Initialize project structure"]:::completed' in out
        assert ":::ready" in out and ":::blocked" in out
        assert "T002 ==> T003" in out
        assert "T001 --> T005" in out
        assert "class T001,T002,T003 critical" in out

    def test_label_truncation_and_escape(self):
        graph = build_graph(parse('- [ ] T001 Say "hi" [now] ' + "x" * 60 + "\n").tasks)
        out = render(graph, "mermaid", RenderOptions(label_width=20))
        assert "#quot;hi#quot;" in out
        assert '..."]' in out

    def test_group_by_phase(self, sample_graph):
        out = render(sample_graph, "mermaid", RenderOptions(group_by_phase=True))
        assert 'subgraph setup["setup"]' in out
        assert "  end" in out

    def test_cycle_styled(self, cyclic_graph):
        out = render(cyclic_graph, "mermaid")
        assert ":::cycle" in out
        assert "linkStyle" in out


class TestDot:
    def test_structure(self, sample_graph):
        out = render(sample_graph, "dot")
        assert out.startswith("digraph tasks {")
        assert out.rstrip().endswith("}")
        assert '"T001" -> "T002" [penwidth=3];' in out
        assert '"T001" -> "T005";' in out
        assert 'class="completed"' in out

    def test_graphviz_alias(self, sample_graph):
        assert render(sample_graph, "graphviz") == render(sample_graph, "dot")

    def test_cycle_edges_colored(self, cyclic_graph):
        out = render(cyclic_graph, "dot")
        assert '"T002" -> "T001" [color="#c62828"];' in out
        assert '"T001" -> "T002" [color="#c62828"];' in out

    def test_quotes_escaped(self):
        graph = build_graph(parse('- [ ] T001 Say "hi"\n').tasks)
        assert 'Say \\"hi\\"' in render(graph, "dot")


class TestAscii:
    def test_topological_indented(self, sample_graph):
        lines = render(sample_graph, "ascii").splitlines()
        body = [line for line in lines if "T00" in line]
        assert [line.split()[1] for line in body] == ["T001", "T002", "T003", "T004", "T005"]
        assert body[0].startswith("✓ T001")
        assert body[1].startswith("  ○ T002")
        assert body[2].startswith("    ✗ T003")
        assert body[2].endswith("*")
        assert body[3].startswith("○ T004")
        assert body[4].startswith("  ~ T005")

    def test_cycles_listed_separately(self, cyclic_graph):
        out = render(cyclic_graph, "ascii")
        assert "Cycles (unordered):" in out
        assert "↻ T001" in out
        assert "T001 -> T002 -> T001" in out

    def test_hide_completed(self, sample_graph):
        out = render(sample_graph, "ascii", RenderOptions(include_completed=False))
        assert "T001" not in out


class TestConsistency:
    def test_same_states_in_all_formats(self, cyclic_graph):
        mermaid = render(cyclic_graph, "mermaid")
        dot = render(cyclic_graph, "dot")
        ascii_ = render(cyclic_graph, "ascii")
        assert "T003" in mermaid and "T003" in dot and "T003" in ascii_
        assert 'T003["T003: C"]:::ready' in mermaid
        assert 'class="ready"' in dot
        assert "○ T003 C" in ascii_

    def test_unknown_format(self, sample_graph):
        with pytest.raises(InvalidOptionError):
            render(sample_graph, "png")
