"""
Graph parser — DOT text from ``terragrunt graph-dependencies`` → DependencyGraph.

Terragrunt prints a digraph whose node ids are stack directories
(usually absolute paths) and whose edges point from a stack to the
stacks it depends on::

    digraph {
        "/infra/vpc" ;
        "/infra/app" ;
        "/infra/app" -> "/infra/vpc";
    }

Every id is normalized to a path relative to the scan root, so
absolute, relative and trailing-slash spellings of one directory
become one node. Duplicate edges collapse to one.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pydot

from tgstatus.core.errors import GraphParseError
from tgstatus.core.models.graph import DependencyEdge, DependencyGraph

logger = logging.getLogger(__name__)

# pydot reports default-attribute statements (node [...]) as nodes
_DEFAULT_STATEMENTS = frozenset({"node", "edge", "graph"})


def normalize_stack_id(raw_id: str, scan_root: Path) -> str:
    """Return ``raw_id`` as a POSIX path relative to ``scan_root``.

    Relative ids are resolved against the scan root. The root itself
    normalizes to ``"."``.
    """
    candidate = Path(raw_id)
    if not candidate.is_absolute():
        candidate = scan_root / candidate
    normalized = os.path.normpath(candidate)
    return Path(os.path.relpath(normalized, os.path.normpath(scan_root))).as_posix()


def parse_graph(raw_graph: str, scan_root: Path) -> DependencyGraph:
    """Parse DOT text into a normalized, deduplicated DependencyGraph.

    Only the first graph in the text is read.

    Args:
        raw_graph: DOT text as printed by the graph subcommand.
        scan_root: Absolute directory every node id is made relative to.

    Returns:
        DependencyGraph with edges and nodes in first-seen order.

    Raises:
        GraphParseError: If the text is not a parseable DOT graph.
    """
    if not raw_graph.strip():
        raise GraphParseError("The dependency graph output was empty.")

    try:
        graphs = pydot.graph_from_dot_data(raw_graph)
    except Exception as e:
        raise GraphParseError(f"Could not parse the dependency graph: {e}") from e
    if not graphs:
        raise GraphParseError(
            "Could not parse the dependency graph.",
            details={"output": raw_graph.strip()[:500]},
        )

    scan_root = Path(os.path.abspath(scan_root))
    nodes: dict[str, None] = {}
    edges: dict[DependencyEdge, None] = {}

    for graph in _walk(graphs[0]):
        for node in graph.get_nodes():
            name = _unquote(node.get_name())
            if name in _DEFAULT_STATEMENTS:
                continue
            nodes.setdefault(normalize_stack_id(name, scan_root))

    for graph in _walk(graphs[0]):
        for edge in graph.get_edges():
            source = _endpoint(edge.get_source(), scan_root)
            target = _endpoint(edge.get_destination(), scan_root)
            nodes.setdefault(source)
            nodes.setdefault(target)
            edges.setdefault(DependencyEdge(source=source, target=target))

    logger.debug("Parsed dependency graph: %d nodes, %d edges", len(nodes), len(edges))
    return DependencyGraph(edges=tuple(edges), nodes=tuple(nodes))


def _walk(graph: pydot.Graph):
    """Yield ``graph`` and all nested subgraphs, depth first."""
    yield graph
    for sub in graph.get_subgraphs():
        yield from _walk(sub)


def _endpoint(raw: object, scan_root: Path) -> str:
    if not isinstance(raw, str):
        raise GraphParseError(
            "Subgraph edge endpoints are not supported in the dependency graph.",
            details={"endpoint": raw},
        )
    name = _unquote(raw)
    if not name:
        raise GraphParseError("Edge with an empty endpoint in the dependency graph.")
    return normalize_stack_id(name, scan_root)


def _unquote(name: str) -> str:
    """Strip DOT quoting: ``"a \\"b\\""`` → ``a "b"``."""
    name = name.strip()
    if len(name) >= 2 and name[0] == name[-1] == '"':
        name = name[1:-1].replace('\\"', '"')
    return name
