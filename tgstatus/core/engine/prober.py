"""
Stack prober — is a stack deployed, and does its plan show drift?

Two probes per stack, always in sequence:

    1. state probe   ``terragrunt state list``
    2. plan probe    ``terragrunt plan -detailed-exitcode`` (only if deployed)

The state probe's failures are classified by matching terragrunt's
stderr against an ordered rule table (first match wins). This is
best-effort: the patterns track the wording of terragrunt, terraform
and the AWS provider, and an unmatched nonzero exit is simply
``Unknown``. Extend ``DEFAULT_RULES`` (or pass your own classifier)
to recognise new messages; the control flow does not change.

Probes never raise for per-stack conditions. Runner failures
(launch errors, timeouts) are captured as classified results too.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from tgstatus.adapters.subprocess_runner import LaunchFailure, SubprocessTimeout
from tgstatus.core.models.process import SubprocessResult
from tgstatus.core.models.status import (
    DeploymentProbe,
    FailureReason,
    PlanResult,
    StackStatus,
)

logger = logging.getLogger(__name__)

STATE_LIST_ARGS = ("state", "list")
PLAN_ARGS = ("plan", "-detailed-exitcode", "-compact-warnings")
NO_REFRESH_ARGS = ("-refresh=false", "-lock=false")

# terraform plan -detailed-exitcode
PLAN_EXIT_NO_CHANGES = 0
PLAN_EXIT_HAS_CHANGES = 2


class Runner(Protocol):
    """What the prober needs from a subprocess runner."""

    async def run(
        self,
        executable: str,
        args: Sequence[str],
        cwd: str | Path,
        *,
        reject_on_nonzero_exit: bool = True,
        label: str | None = None,
        timeout: float | None = None,
    ) -> SubprocessResult: ...


# ── Classification policy ───────────────────────────────────────


@dataclass(frozen=True)
class ClassificationRule:
    """stderr containing any of ``patterns`` → ``reason``."""

    reason: FailureReason
    patterns: tuple[str, ...]

    def matches(self, text: str) -> bool:
        return any(p in text for p in self.patterns)


DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(FailureReason.NO_STATE_FILE, ("No state file was found",)),
    ClassificationRule(FailureReason.PARENT_NOT_DEPLOYED, ("but detected no outputs",)),
    ClassificationRule(
        FailureReason.CREDENTIALS_UNAVAILABLE,
        (
            "Error finding AWS credentials",
            "NoCredentialProviders",
            "no valid credential sources",
        ),
    ),
    ClassificationRule(
        FailureReason.INITIALIZATION_REQUIRED,
        ("Initialization required", "Could not load plugin"),
    ),
)


class FailureClassifier:
    """Ordered stderr pattern table; the first matching rule wins."""

    def __init__(self, rules: Iterable[ClassificationRule] = DEFAULT_RULES) -> None:
        self.rules = tuple(rules)

    def classify(self, stderr: str) -> FailureReason | None:
        for rule in self.rules:
            if rule.matches(stderr):
                return rule.reason
        return None

    def classify_state_listing(self, result: SubprocessResult) -> DeploymentProbe:
        """Turn a finished ``state list`` run into a DeploymentProbe."""
        reason = self.classify(result.stderr)
        if reason is None and result.exit_code != 0:
            reason = FailureReason.UNKNOWN

        if reason is not None:
            return DeploymentProbe(failure_reason=reason, result=result)

        # Exit zero. A listing with resource lines spans more than one line.
        if len(result.stdout.split("\n")) > 1:
            return DeploymentProbe(deployed=True, probe_succeeded=True, result=result)
        return DeploymentProbe(
            probe_succeeded=True,
            failure_reason=FailureReason.EMPTY_STATE_DESPITE_SUCCESS,
            result=result,
        )


def interpret_plan(result: SubprocessResult) -> PlanResult:
    """Map the detailed exit code: 0 up to date, 2 drift, else error."""
    if result.exit_code == PLAN_EXIT_NO_CHANGES:
        return PlanResult(success=True, exit_code=result.exit_code, result=result)
    if result.exit_code == PLAN_EXIT_HAS_CHANGES:
        return PlanResult(success=True, has_changes=True, exit_code=result.exit_code, result=result)
    return PlanResult(exit_code=result.exit_code, result=result)


def plan_args(refresh: bool) -> tuple[str, ...]:
    """Plan arguments; without refresh, skip refreshing and state locking."""
    return PLAN_ARGS if refresh else PLAN_ARGS + NO_REFRESH_ARGS


# ── Prober ──────────────────────────────────────────────────────


class StackProber:
    """Runs the state and plan probes for stacks under one scan root.

    Args:
        runner: Subprocess runner (real or mock).
        scan_root: Directory stack ids are relative to.
        terragrunt: terragrunt executable name or path.
        refresh: Pass refresh + locking to the plan probe.
        classifier: stderr classification policy.
    """

    def __init__(
        self,
        runner: Runner,
        scan_root: Path,
        *,
        terragrunt: str = "terragrunt",
        refresh: bool = False,
        classifier: FailureClassifier | None = None,
    ) -> None:
        self.runner = runner
        self.scan_root = scan_root
        self.terragrunt = terragrunt
        self.refresh = refresh
        self.classifier = classifier or FailureClassifier()

    def stack_dir(self, stack: str) -> Path:
        return (self.scan_root / stack).absolute()

    async def is_deployed(self, stack: str) -> DeploymentProbe:
        """Probe the state listing of ``stack``."""
        try:
            result = await self.runner.run(
                self.terragrunt,
                STATE_LIST_ARGS,
                self.stack_dir(stack),
                reject_on_nonzero_exit=False,
                label=stack,
            )
        except LaunchFailure as e:
            logger.warning("%s: %s", stack, e)
            return DeploymentProbe(failure_reason=FailureReason.LAUNCH_FAILED, error=str(e))
        except SubprocessTimeout as e:
            logger.warning("%s: %s", stack, e)
            return DeploymentProbe(
                failure_reason=FailureReason.TIMED_OUT, error=str(e), result=e.result
            )

        probe = self.classifier.classify_state_listing(result)
        if probe.deployed:
            logger.info("%s is deployed", stack)
        else:
            logger.info("%s: not confirmed deployed (%s)", stack, probe.failure_reason)
        return probe

    async def get_plan(self, stack: str) -> PlanResult:
        """Run the plan probe for ``stack`` and read its detailed exit code."""
        try:
            result = await self.runner.run(
                self.terragrunt,
                plan_args(self.refresh),
                self.stack_dir(stack),
                reject_on_nonzero_exit=False,
                label=stack,
            )
        except (LaunchFailure, SubprocessTimeout) as e:
            logger.warning("%s: plan failed: %s", stack, e)
            return PlanResult(error=str(e), result=e.result)

        plan = interpret_plan(result)
        if not plan.success:
            logger.info("%s: plan errored (exit %d)", stack, result.exit_code)
        elif plan.has_changes:
            logger.info("%s has changes in its plan", stack)
        else:
            logger.info("%s is up to date", stack)
        return plan

    async def probe(self, stack: str) -> StackStatus:
        """State probe, then the plan probe only when the stack is deployed."""
        start = time.monotonic()
        deployment = await self.is_deployed(stack)
        plan = await self.get_plan(stack) if deployment.deployed else None
        return StackStatus.from_probes(
            stack,
            deployment,
            plan,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
