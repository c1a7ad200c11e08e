"""Engine — per-stack probes and the concurrent status orchestrator."""

from tgstatus.core.engine.orchestrator import StatusReport, run_status
from tgstatus.core.engine.prober import (
    DEFAULT_RULES,
    ClassificationRule,
    FailureClassifier,
    StackProber,
)

__all__ = [
    "DEFAULT_RULES",
    "ClassificationRule",
    "FailureClassifier",
    "StackProber",
    "StatusReport",
    "run_status",
]
