"""
Tests for the dependency graph.
"""

import pytest
from strata.core.dag import DependencyGraph
from strata.core.deferred import DeferredValue
from strata.core.errors import CyclicDependencyError


def make(graph, name, deps=()):
    return DeferredValue.create(lambda: name, deps, name=name, graph=graph)


class TestDependencyGraph:
    """Tests for DependencyGraph class."""

    def test_empty_graph(self):
        """Test creating an empty graph."""
        graph = DependencyGraph()

        assert len(graph.nodes) == 0
        assert graph.detect_cycles() is None

    def test_values_register_themselves(self):
        """Creating a value adds a node and its edges."""
        graph = DependencyGraph()

        a = make(graph, "a")
        b = make(graph, "b", [a])

        assert a in graph
        assert b in graph
        assert graph.nodes[b].name == "b"
        assert graph.get_dependencies(b) == [a]
        assert graph.get_dependents(a) == [b]

    def test_topological_sort(self):
        """Test topological sorting of a chain."""
        graph = DependencyGraph()

        # a <- b <- c
        a = make(graph, "a")
        b = make(graph, "b", [a])
        c = make(graph, "c", [b])

        order = graph.topological_sort()

        assert order.index(a) < order.index(b) < order.index(c)

    def test_topological_sort_complex(self):
        """Test topological sorting with parallel branches."""
        graph = DependencyGraph()

        # Diamond:
        #      a
        #    /   \
        #   b     c
        #    \   /
        #      d
        a = make(graph, "a")
        b = make(graph, "b", [a])
        c = make(graph, "c", [a])
        d = make(graph, "d", [b, c])

        order = graph.topological_sort()

        assert order[0] is a
        assert order[-1] is d
        assert order.index(b) < order.index(d)
        assert order.index(c) < order.index(d)

    def test_topological_sort_of_subgraph(self):
        """Only the requested values are ordered."""
        graph = DependencyGraph()

        a = make(graph, "a")
        b = make(graph, "b", [a])
        make(graph, "unrelated")

        order = graph.topological_sort(graph.reachable([b]))

        assert order == [a, b]

    def test_execution_levels(self):
        """Test getting execution levels for parallel resolution."""
        graph = DependencyGraph()

        a = make(graph, "a")
        b = make(graph, "b", [a])
        c = make(graph, "c", [a])
        d = make(graph, "d", [b, c])

        levels = graph.get_execution_levels()

        assert len(levels) == 3
        assert levels[0] == [a]
        assert set(levels[1]) == {b, c}
        assert levels[2] == [d]

    def test_execution_levels_use_longest_path(self):
        """A value sits one level after its deepest dependency."""
        graph = DependencyGraph()

        a = make(graph, "a")
        b = make(graph, "b", [a])
        c = make(graph, "c", [a, b])

        levels = graph.get_execution_levels()

        assert levels == [[a], [b], [c]]

    def test_reachable_and_ancestors(self):
        """Reachability follows dependency edges only."""
        graph = DependencyGraph()

        a = make(graph, "a")
        b = make(graph, "b", [a])
        c = make(graph, "c", [b])
        other = make(graph, "other")

        assert graph.reachable([c]) == {a, b, c}
        assert graph.ancestors(c) == {a, b}
        assert other not in graph.reachable([c])

    def test_add_edges(self):
        """Edges can be added to an existing consumer."""
        graph = DependencyGraph()

        a = make(graph, "a")
        b = make(graph, "b")

        graph.add_edges(b, [a])

        assert graph.get_dependencies(b) == [a]

    def test_duplicate_edges_are_ignored(self):
        graph = DependencyGraph()

        a = make(graph, "a")
        b = make(graph, "b", [a])

        graph.add_edges(b, [a])

        assert graph.get_dependencies(b) == [a]
        assert graph.get_dependents(a) == [b]


class TestCycleRejection:
    """Edges that would close a cycle are refused."""

    def test_cycle_rejected(self):
        """a <- b <- c, then a depending on c would close a cycle."""
        graph = DependencyGraph()

        a = make(graph, "a")
        b = make(graph, "b", [a])
        c = make(graph, "c", [b])

        with pytest.raises(CyclicDependencyError) as exc_info:
            graph.add_edges(a, [c])

        assert exc_info.value.cycle == ["a", "c", "b", "a"]

    def test_graph_unchanged_after_rejection(self):
        """A rejected batch adds none of its edges."""
        graph = DependencyGraph()

        a = make(graph, "a")
        b = make(graph, "b", [a])
        independent = make(graph, "independent")
        before = graph.to_dict()

        with pytest.raises(CyclicDependencyError):
            graph.add_edges(a, [independent, b])

        assert graph.to_dict() == before
        assert graph.get_dependencies(a) == []
        assert graph.get_dependents(independent) == []

    def test_self_edge_rejected(self):
        graph = DependencyGraph()

        a = make(graph, "a")

        with pytest.raises(CyclicDependencyError):
            graph.add_edges(a, [a])

    def test_no_cycle_detection(self):
        """Test that no cycle is detected in a valid graph."""
        graph = DependencyGraph()

        a = make(graph, "a")
        make(graph, "b", [a])

        assert graph.detect_cycles() is None

    def test_foreign_dependency_rejected(self):
        """Values from another graph cannot be wired in."""
        graph = DependencyGraph()
        other = DependencyGraph()

        a = make(graph, "a")
        foreign = make(other, "foreign")

        with pytest.raises(ValueError):
            graph.add_edges(a, [foreign])


class TestGraphSerialization:
    """Tests for to_dict and repr."""

    def test_graph_to_dict(self):
        """Test converting the graph to a dictionary."""
        graph = DependencyGraph()

        a = make(graph, "a")
        make(graph, "b", [a])

        graph_dict = graph.to_dict()

        assert len(graph_dict["nodes"]) == 2
        assert graph_dict["edges"] == [{"from": "b", "to": "a"}]
        assert graph_dict["nodes"][0]["state"] == "unresolved"

    def test_secret_flag_in_dict(self):
        graph = DependencyGraph()

        a = make(graph, "a").mark_secret()

        nodes = {node["name"]: node for node in graph.to_dict()["nodes"]}
        assert nodes[a.name]["secret"] is True

    def test_repr(self):
        graph = DependencyGraph()

        a = make(graph, "a")
        make(graph, "b", [a])

        assert repr(graph) == "DependencyGraph(nodes=2, edges=1)"
