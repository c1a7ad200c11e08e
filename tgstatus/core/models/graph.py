"""
Dependency graph models — stacks, edges, and derived orderings.

A stack is identified by its directory path relative to the scan
root. An edge ``(source, target)`` means *source depends on target*:
target must be deployed before source and destroyed after it.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator

StackId = str


class DependencyEdge(BaseModel):
    """``source`` depends on ``target``."""

    model_config = ConfigDict(frozen=True)

    source: StackId
    target: StackId

    def __str__(self) -> str:
        return f"{self.source} -> {self.target}"


class DependencyGraph(BaseModel):
    """Normalized edge list and node list parsed from the graph output.

    Both tuples keep first-seen order and contain no duplicates, so
    two parses of the same text compare equal and the orderer can
    break ties deterministically.
    """

    model_config = ConfigDict(frozen=True)

    edges: tuple[DependencyEdge, ...] = ()
    nodes: tuple[StackId, ...] = ()   # every stack mentioned anywhere

    @model_validator(mode="after")
    def _edge_endpoints_are_nodes(self) -> DependencyGraph:
        known = set(self.nodes)
        for edge in self.edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in known:
                    raise ValueError(f"Edge endpoint '{endpoint}' missing from nodes")
        return self

    @property
    def connected_nodes(self) -> list[StackId]:
        """Nodes touched by at least one edge, in first-seen order."""
        touched = {e.source for e in self.edges} | {e.target for e in self.edges}
        return [n for n in self.nodes if n in touched]


class OrderedDependencies(BaseModel):
    """Deploy/destroy orders plus the stacks without any ordering constraint."""

    model_config = ConfigDict(frozen=True)

    destroy_order: tuple[StackId, ...] = ()
    deploy_order: tuple[StackId, ...] = ()
    no_deps: tuple[StackId, ...] = ()

    @model_validator(mode="after")
    def _orders_are_mirrored(self) -> OrderedDependencies:
        if tuple(reversed(self.destroy_order)) != self.deploy_order:
            raise ValueError("deploy_order must be the exact reverse of destroy_order")
        if set(self.destroy_order) & set(self.no_deps):
            raise ValueError("no_deps must not overlap the ordered stacks")
        return self

    @classmethod
    def from_destroy_order(
        cls,
        destroy_order: list[StackId] | tuple[StackId, ...],
        no_deps: list[StackId] | tuple[StackId, ...] = (),
    ) -> OrderedDependencies:
        """Build the triple; deploy order is always derived, never recomputed."""
        destroy = tuple(destroy_order)
        return cls(
            destroy_order=destroy,
            deploy_order=tuple(reversed(destroy)),
            no_deps=tuple(no_deps),
        )

    @property
    def processing_order(self) -> list[StackId]:
        """Every stack once: deploy order followed by the unconstrained stacks."""
        return [*self.deploy_order, *self.no_deps]

    @property
    def stack_count(self) -> int:
        return len(self.destroy_order) + len(self.no_deps)

    def to_dict(self) -> dict:
        return {
            "deploy_order": list(self.deploy_order),
            "destroy_order": list(self.destroy_order),
            "no_deps": list(self.no_deps),
        }
