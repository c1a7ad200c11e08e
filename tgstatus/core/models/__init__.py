"""
Domain models — Pydantic types for stack status reporting.

All models are re-exported here for convenient access:

    from tgstatus.core.models import DependencyGraph, StackStatus, SubprocessResult
"""

from tgstatus.core.models.graph import (
    DependencyEdge,
    DependencyGraph,
    OrderedDependencies,
    StackId,
)
from tgstatus.core.models.process import SubprocessResult
from tgstatus.core.models.status import (
    DeploymentProbe,
    FailureReason,
    PlanResult,
    StackStatus,
)

__all__ = [
    # graph.py
    "DependencyEdge",
    "DependencyGraph",
    "OrderedDependencies",
    "StackId",
    # process.py
    "SubprocessResult",
    # status.py
    "DeploymentProbe",
    "FailureReason",
    "PlanResult",
    "StackStatus",
]
