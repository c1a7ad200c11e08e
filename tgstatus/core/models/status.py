"""
Stack status models — what the probes report per stack.

Every per-stack condition is data, never an exception: a stack that
cannot be probed still gets a StackStatus with a classified reason.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from tgstatus.core.models.process import SubprocessResult


class FailureReason(StrEnum):
    """Why the deployment probe could not confirm a deployment."""

    NO_STATE_FILE = "NoStateFile"
    PARENT_NOT_DEPLOYED = "ParentNotDeployed"
    CREDENTIALS_UNAVAILABLE = "CredentialsUnavailable"
    INITIALIZATION_REQUIRED = "InitializationRequired"
    EMPTY_STATE_DESPITE_SUCCESS = "EmptyStateDespiteSuccess"
    LAUNCH_FAILED = "LaunchFailed"
    TIMED_OUT = "TimedOut"
    UNKNOWN = "Unknown"

    @property
    def message(self) -> str:
        """Human-readable explanation, rendered verbatim by the CLI."""
        return _REASON_MESSAGES[self]

    @property
    def is_definitive(self) -> bool:
        """True when the reason proves the stack is not deployed.

        Every other reason only means "could not tell".
        """
        return self is FailureReason.NO_STATE_FILE


_REASON_MESSAGES: dict[FailureReason, str] = {
    FailureReason.NO_STATE_FILE: "No state file found.",
    FailureReason.PARENT_NOT_DEPLOYED: "Parent stack not deployed.",
    FailureReason.CREDENTIALS_UNAVAILABLE: "Could not find AWS credentials.",
    FailureReason.INITIALIZATION_REQUIRED: (
        "Initialization required. Run terragrunt init in this folder."
    ),
    FailureReason.EMPTY_STATE_DESPITE_SUCCESS: (
        'Terragrunt exited zero, but Terraform did not output anything '
        'from "terragrunt state list".'
    ),
    FailureReason.LAUNCH_FAILED: "Could not start terragrunt in this folder.",
    FailureReason.TIMED_OUT: "Timed out waiting for terragrunt.",
    FailureReason.UNKNOWN: "Unknown",
}


class DeploymentProbe(BaseModel):
    """Result of the state-listing probe."""

    model_config = ConfigDict(frozen=True)

    deployed: bool = False
    probe_succeeded: bool = False
    failure_reason: FailureReason | None = None
    error: str | None = None                 # launch/timeout diagnostics
    result: SubprocessResult | None = None   # raw output, when the tool ran


class PlanResult(BaseModel):
    """Result of the plan probe (detailed exit code convention)."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    has_changes: bool = False
    exit_code: int | None = None
    error: str | None = None
    result: SubprocessResult | None = None

    @property
    def up_to_date(self) -> bool:
        return self.success and not self.has_changes


class StackStatus(BaseModel):
    """Final per-stack aggregate produced by the orchestrator."""

    model_config = ConfigDict(frozen=True)

    stack: str
    deployed: bool = False
    probe_succeeded: bool = False
    failure_reason: FailureReason | None = None
    plan: PlanResult | None = None
    error: str | None = None
    duration_ms: int = 0

    @classmethod
    def from_probes(
        cls,
        stack: str,
        deployment: DeploymentProbe,
        plan: PlanResult | None = None,
        duration_ms: int = 0,
    ) -> StackStatus:
        return cls(
            stack=stack,
            deployed=deployment.deployed,
            probe_succeeded=deployment.probe_succeeded,
            failure_reason=deployment.failure_reason,
            plan=plan if deployment.deployed else None,
            error=deployment.error,
            duration_ms=duration_ms,
        )

    @classmethod
    def from_failure(
        cls,
        stack: str,
        reason: FailureReason,
        error: str | None = None,
        duration_ms: int = 0,
    ) -> StackStatus:
        """A stack whose probe task itself failed (timeout, crash)."""
        return cls(
            stack=stack,
            failure_reason=reason,
            error=error,
            duration_ms=duration_ms,
        )

    @property
    def state(self) -> str:
        """One-word summary: up_to_date, drifted, plan_failed, not_deployed, unknown."""
        if self.deployed:
            if self.plan is None or not self.plan.success:
                return "plan_failed"
            return "drifted" if self.plan.has_changes else "up_to_date"
        if self.failure_reason is not None and self.failure_reason.is_definitive:
            return "not_deployed"
        return "unknown"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "stack": self.stack,
            "state": self.state,
            "deployed": self.deployed,
            "probe_succeeded": self.probe_succeeded,
            "failure_reason": self.failure_reason.value if self.failure_reason else None,
            "failure_message": self.failure_reason.message if self.failure_reason else None,
            "duration_ms": self.duration_ms,
        }
        if self.plan is not None:
            data["plan"] = {
                "success": self.plan.success,
                "has_changes": self.plan.has_changes,
                "exit_code": self.plan.exit_code,
            }
        if self.error:
            data["error"] = self.error
        return data
