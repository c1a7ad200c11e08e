"""Dependency graph — DOT parsing and topological ordering."""

from tgstatus.core.graph.ordering import order_dependencies
from tgstatus.core.graph.parser import normalize_stack_id, parse_graph

__all__ = ["normalize_stack_id", "order_dependencies", "parse_graph"]
