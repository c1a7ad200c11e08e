"""
Status use cases — end-to-end ``order`` and ``status`` runs.

Each use case builds its runner, sink and prober from the settings
it is given, drives the async pipeline to completion and returns a
result object. Whole-run fatal errors are caught here and reported
through ``result.error``; callers never see a TgStatusError.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from tgstatus.adapters.subprocess_runner import OutputSink, SubprocessRunner
from tgstatus.core.config.settings import StatusSettings
from tgstatus.core.engine.orchestrator import ResultCallback, StatusReport, run_status
from tgstatus.core.engine.prober import Runner, StackProber
from tgstatus.core.errors import TgStatusError
from tgstatus.core.models.graph import OrderedDependencies
from tgstatus.core.observability.diagnostics import LoggingSink
from tgstatus.core.services.terragrunt import (
    check_scan_root,
    discover_dependencies,
    resolve_tools,
)

logger = logging.getLogger(__name__)


@dataclass
class OrderResult:
    """Deploy/destroy orders for one scan root."""

    ordered: OrderedDependencies = field(default_factory=OrderedDependencies)
    error: str | None = None
    failure: TgStatusError | None = None

    def to_dict(self) -> dict:
        if self.failure is not None:
            return {"error": self.failure.to_dict()}
        return self.ordered.to_dict()


@dataclass
class StatusResult:
    """Aggregated status of every stack under one scan root."""

    report: StatusReport | None = None
    error: str | None = None
    failure: TgStatusError | None = None

    def to_dict(self) -> dict:
        if self.failure is not None:
            return {"error": self.failure.to_dict()}
        return self.report.to_dict() if self.report else {}


def _build_runner(settings: StatusSettings, sink: OutputSink) -> SubprocessRunner:
    return SubprocessRunner(sink=sink, timeout=settings.command_timeout)


async def _order(settings: StatusSettings, runner: Runner) -> OrderedDependencies:
    tools = resolve_tools(settings.terragrunt, settings.terraform)
    scan_root = check_scan_root(settings.scan_root)
    return await discover_dependencies(runner, tools.terragrunt, scan_root, settings.graph_args)


async def _status(
    settings: StatusSettings,
    runner: Runner,
    on_result: ResultCallback | None,
) -> StatusReport:
    tools = resolve_tools(settings.terragrunt, settings.terraform)
    scan_root = check_scan_root(settings.scan_root)
    ordered = await discover_dependencies(
        runner, tools.terragrunt, scan_root, settings.graph_args
    )
    prober = StackProber(
        runner,
        scan_root,
        terragrunt=tools.terragrunt,
        refresh=settings.refresh,
    )
    return await run_status(
        ordered,
        prober,
        max_concurrency=settings.max_concurrency,
        probe_timeout=settings.probe_timeout,
        on_result=on_result,
    )


def get_order(
    settings: StatusSettings,
    *,
    runner: Runner | None = None,
    sink: OutputSink | None = None,
) -> OrderResult:
    """Discover the dependency graph and compute deploy/destroy orders.

    Args:
        settings: Validated run settings.
        runner: Subprocess runner override (tests pass a MockRunner).
        sink: Diagnostic sink for the real runner (default: LoggingSink).
    """
    result = OrderResult()
    sink = sink if sink is not None else LoggingSink()
    runner = runner or _build_runner(settings, sink)
    try:
        result.ordered = asyncio.run(_order(settings, runner))
    except TgStatusError as e:
        logger.debug("Order failed: %s", e)
        result.error = e.message
        result.failure = e
    finally:
        _flush(sink)
    return result


def get_status(
    settings: StatusSettings,
    *,
    on_result: ResultCallback | None = None,
    runner: Runner | None = None,
    sink: OutputSink | None = None,
) -> StatusResult:
    """Discover the graph, then probe every stack concurrently.

    Args:
        settings: Validated run settings.
        on_result: Called with each StackStatus as soon as it is known.
        runner: Subprocess runner override (tests pass a MockRunner).
        sink: Diagnostic sink for the real runner (default: LoggingSink).
    """
    result = StatusResult()
    sink = sink if sink is not None else LoggingSink()
    runner = runner or _build_runner(settings, sink)
    try:
        result.report = asyncio.run(_status(settings, runner, on_result))
    except TgStatusError as e:
        logger.debug("Status failed: %s", e)
        result.error = e.message
        result.failure = e
    finally:
        _flush(sink)
    return result


def _flush(sink: OutputSink) -> None:
    flush = getattr(sink, "flush", None)
    if callable(flush):
        flush()
