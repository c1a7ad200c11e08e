"""
Status orchestrator — probe every stack concurrently, collect all results.

Fan-out/fan-in:
    ordered deps → one task per stack → join all → StatusReport

Probing is read-only, so stacks are probed in any order and all at
once (optionally capped). One stack's failure never touches another:
each task writes only its own result slot, and anything a task
raises becomes a classified StackStatus for that stack.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from tgstatus.core.models.graph import OrderedDependencies
from tgstatus.core.models.status import FailureReason, StackStatus

logger = logging.getLogger(__name__)

# Called once per stack as soon as its probes finish
ResultCallback = Callable[[StackStatus], None]


class Prober(Protocol):
    async def probe(self, stack: str) -> StackStatus: ...


@dataclass
class StatusReport:
    """Result of probing every stack."""

    ordered: OrderedDependencies = field(default_factory=OrderedDependencies)
    statuses: dict[str, StackStatus] = field(default_factory=dict)
    duration_ms: int = 0

    @property
    def total(self) -> int:
        return len(self.statuses)

    def _count(self, state: str) -> int:
        return sum(1 for s in self.statuses.values() if s.state == state)

    @property
    def up_to_date(self) -> int:
        return self._count("up_to_date")

    @property
    def drifted(self) -> int:
        return self._count("drifted")

    @property
    def plan_failed(self) -> int:
        return self._count("plan_failed")

    @property
    def not_deployed(self) -> int:
        return self._count("not_deployed")

    @property
    def unknown(self) -> int:
        return self._count("unknown")

    @property
    def deployed(self) -> int:
        return sum(1 for s in self.statuses.values() if s.deployed)

    @property
    def all_clean(self) -> bool:
        """Every stack deployed and up to date."""
        return self.total > 0 and self.up_to_date == self.total

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "deployed": self.deployed,
            "up_to_date": self.up_to_date,
            "drifted": self.drifted,
            "plan_failed": self.plan_failed,
            "not_deployed": self.not_deployed,
            "unknown": self.unknown,
            "duration_ms": self.duration_ms,
            "order": self.ordered.to_dict(),
            "stacks": [s.to_dict() for s in self.statuses.values()],
        }


async def run_status(
    ordered: OrderedDependencies,
    prober: Prober,
    *,
    max_concurrency: int | None = None,
    probe_timeout: float | None = None,
    on_result: ResultCallback | None = None,
) -> StatusReport:
    """Probe every stack of ``ordered`` and return all results.

    Args:
        ordered: Output of the orderer; deploy order + no-deps are probed.
        prober: Per-stack probe implementation.
        max_concurrency: Cap on stacks probed at once (None = no cap).
        probe_timeout: Seconds one stack's probes may take in total.
        on_result: Progress callback, called as each stack completes.

    Returns:
        StatusReport with one StackStatus per stack, in processing order.
    """
    stacks = ordered.processing_order
    # Pre-sized: one slot per stack, filled by that stack's task only
    slots: dict[str, StackStatus | None] = dict.fromkeys(stacks)
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None
    start = time.monotonic()

    async def _probe_one(stack: str) -> None:
        if semaphore is None:
            status = await _guarded_probe(prober, stack, probe_timeout)
        else:
            async with semaphore:
                status = await _guarded_probe(prober, stack, probe_timeout)
        slots[stack] = status
        if on_result is not None:
            try:
                on_result(status)
            except Exception as e:
                logger.warning("Result callback failed for %s: %s", stack, e)

    logger.info("Probing %d stacks", len(stacks))
    await asyncio.gather(*(_probe_one(stack) for stack in stacks))

    report = StatusReport(
        ordered=ordered,
        statuses={stack: status for stack, status in slots.items() if status is not None},
        duration_ms=int((time.monotonic() - start) * 1000),
    )
    logger.info(
        "Probed %d stacks in %dms: %d up to date, %d drifted, %d unknown",
        report.total,
        report.duration_ms,
        report.up_to_date,
        report.drifted,
        report.unknown,
    )
    return report


async def _guarded_probe(prober: Prober, stack: str, timeout: float | None) -> StackStatus:
    """Run one stack's probes; every failure becomes that stack's status."""
    start = time.monotonic()
    try:
        return await asyncio.wait_for(prober.probe(stack), timeout=timeout)
    except TimeoutError:
        logger.warning("%s: probes did not finish within %gs", stack, timeout)
        return StackStatus.from_failure(
            stack,
            FailureReason.TIMED_OUT,
            error=f"Probes did not finish within {timeout:g}s",
            duration_ms=int((time.monotonic() - start) * 1000),
        )
    except Exception as e:
        logger.warning("%s: probe crashed: %s", stack, e, exc_info=True)
        return StackStatus.from_failure(
            stack,
            FailureReason.UNKNOWN,
            error=f"{type(e).__name__}: {e}",
            duration_ms=int((time.monotonic() - start) * 1000),
        )
