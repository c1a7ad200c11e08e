"""
Topological orderer — DependencyGraph → OrderedDependencies.

Destroy order is a topological sort of the edge relation: for an
edge (A depends on B), A is destroyed before B. Deploy order is the
exact reverse of destroy order and is never computed on its own.

Ties are broken by first-seen position in the graph, so a fixed
input always yields the same order. A cycle is fatal: no partial
order is returned.
"""

from __future__ import annotations

import logging

import networkx as nx

from tgstatus.core.errors import CyclicGraphError
from tgstatus.core.models.graph import DependencyGraph, OrderedDependencies

logger = logging.getLogger(__name__)


def build_digraph(graph: DependencyGraph) -> nx.DiGraph:
    """Directed graph of the edges only (isolated nodes are left out)."""
    digraph = nx.DiGraph()
    digraph.add_nodes_from(graph.connected_nodes)
    digraph.add_edges_from((e.source, e.target) for e in graph.edges)
    return digraph


def order_dependencies(graph: DependencyGraph) -> OrderedDependencies:
    """Compute destroy order, deploy order and the unconstrained stacks.

    Raises:
        CyclicGraphError: If the edges contain a cycle (self-loops included).
    """
    digraph = build_digraph(graph)
    rank = {node: index for index, node in enumerate(graph.nodes)}

    try:
        destroy_order = list(nx.lexicographical_topological_sort(digraph, key=rank.__getitem__))
    except nx.NetworkXUnfeasible:
        cycle = nx.find_cycle(digraph)
        logger.debug("Cycle in dependency graph: %s", cycle)
        raise CyclicGraphError([(src, dst) for src, dst in cycle]) from None

    ordered = set(destroy_order)
    no_deps = [node for node in graph.nodes if node not in ordered]

    result = OrderedDependencies.from_destroy_order(destroy_order, no_deps)
    logger.info(
        "Ordered %d stacks (%d with dependencies, %d without)",
        result.stack_count,
        len(destroy_order),
        len(no_deps),
    )
    return result
