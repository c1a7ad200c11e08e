"""
Tests for the topological orderer and the graph models it produces.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from tgstatus.core.errors import CyclicGraphError
from tgstatus.core.graph.ordering import order_dependencies
from tgstatus.core.graph.parser import parse_graph
from tgstatus.core.models.graph import (
    DependencyEdge,
    DependencyGraph,
    OrderedDependencies,
)


def _graph(edges, extra_nodes=()) -> DependencyGraph:
    nodes: dict[str, None] = {}
    for source, target in edges:
        nodes.setdefault(source)
        nodes.setdefault(target)
    for name in extra_nodes:
        nodes.setdefault(name)
    return DependencyGraph(
        edges=tuple(DependencyEdge(source=s, target=t) for s, t in edges),
        nodes=tuple(nodes),
    )


class TestOrderDependencies:
    def test_single_edge_plus_standalone(self):
        ordered = order_dependencies(_graph([("b", "a")], extra_nodes=["c"]))

        assert ordered.destroy_order == ("b", "a")
        assert ordered.deploy_order == ("a", "b")
        assert ordered.no_deps == ("c",)

    def test_deploy_is_reverse_of_destroy(self):
        edges = [("app", "vpc"), ("app", "db"), ("db", "vpc"), ("dns", "app")]
        ordered = order_dependencies(_graph(edges))
        assert ordered.deploy_order == tuple(reversed(ordered.destroy_order))

    def test_every_edge_respected(self):
        edges = [("app", "vpc"), ("app", "db"), ("db", "vpc"), ("dns", "app"), ("cdn", "dns")]
        ordered = order_dependencies(_graph(edges))
        position = {stack: i for i, stack in enumerate(ordered.destroy_order)}
        for source, target in edges:
            assert position[source] < position[target], f"{source} -> {target}"

    def test_stacks_partitioned_between_orders_and_no_deps(self):
        graph = _graph([("app", "vpc")], extra_nodes=["dns", "logs"])
        ordered = order_dependencies(graph)

        assert set(ordered.destroy_order) | set(ordered.no_deps) == set(graph.nodes)
        assert not set(ordered.destroy_order) & set(ordered.no_deps)
        assert ordered.stack_count == 4

    def test_ties_follow_first_seen_order(self):
        ordered = order_dependencies(_graph([("app", "vpc"), ("dns", "vpc")]))
        assert ordered.destroy_order == ("app", "dns", "vpc")
        assert ordered.deploy_order == ("vpc", "dns", "app")

    def test_deterministic(self):
        graph = _graph([("a", "z"), ("b", "z"), ("c", "y"), ("y", "z")])
        assert order_dependencies(graph) == order_dependencies(graph)

    def test_no_edges(self):
        ordered = order_dependencies(_graph([], extra_nodes=["x", "y"]))
        assert ordered.destroy_order == ()
        assert ordered.deploy_order == ()
        assert ordered.no_deps == ("x", "y")

    def test_empty_graph(self):
        ordered = order_dependencies(DependencyGraph())
        assert ordered.processing_order == []

    def test_processing_order(self):
        ordered = order_dependencies(_graph([("b", "a")], extra_nodes=["c"]))
        assert ordered.processing_order == ["a", "b", "c"]


class TestCycles:
    def test_two_node_cycle(self):
        with pytest.raises(CyclicGraphError) as exc:
            order_dependencies(_graph([("a", "b"), ("b", "a")]))
        assert set(exc.value.cycle) == {("a", "b"), ("b", "a")}
        assert "cycle" in exc.value.message

    def test_self_loop(self):
        with pytest.raises(CyclicGraphError) as exc:
            order_dependencies(_graph([("a", "a")]))
        assert exc.value.cycle == [("a", "a")]
        assert "a -> a" in exc.value.message

    def test_cycle_among_acyclic_stacks(self):
        edges = [("app", "vpc"), ("x", "y"), ("y", "z"), ("z", "x")]
        with pytest.raises(CyclicGraphError):
            order_dependencies(_graph(edges))


class TestParseThenOrder:
    def test_graph_output_to_orders(self, scan_root: Path, make_graph):
        text = make_graph(scan_root, ("app", "vpc"), nodes=("dns",))
        ordered = order_dependencies(parse_graph(text, scan_root))

        assert ordered.destroy_order == ("app", "vpc")
        assert ordered.deploy_order == ("vpc", "app")
        assert ordered.no_deps == ("dns",)


class TestOrderedDependenciesModel:
    def test_from_destroy_order_derives_deploy(self):
        ordered = OrderedDependencies.from_destroy_order(["b", "a"], ["c"])
        assert ordered.deploy_order == ("a", "b")

    def test_rejects_unmirrored_orders(self):
        with pytest.raises(ValidationError):
            OrderedDependencies(destroy_order=("b", "a"), deploy_order=("b", "a"))

    def test_rejects_overlap_with_no_deps(self):
        with pytest.raises(ValidationError):
            OrderedDependencies.from_destroy_order(["b", "a"], ["a"])

    def test_to_dict(self):
        ordered = OrderedDependencies.from_destroy_order(["b", "a"], ["c"])
        assert ordered.to_dict() == {
            "deploy_order": ["a", "b"],
            "destroy_order": ["b", "a"],
            "no_deps": ["c"],
        }

    def test_graph_rejects_unknown_edge_endpoint(self):
        with pytest.raises(ValidationError):
            DependencyGraph(edges=(DependencyEdge(source="a", target="b"),), nodes=("a",))
