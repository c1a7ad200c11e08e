"""
Tests for the status orchestrator — concurrent fan-out and fault isolation.
"""

import asyncio
from pathlib import Path

from tgstatus.adapters.mock import MockRunner
from tgstatus.core.engine.orchestrator import StatusReport, run_status
from tgstatus.core.engine.prober import StackProber
from tgstatus.core.models.graph import OrderedDependencies
from tgstatus.core.models.status import FailureReason, PlanResult, StackStatus

LISTING = "aws_vpc.main\naws_subnet.a\n"


def _ordered() -> OrderedDependencies:
    # app depends on vpc; dns is unconstrained
    return OrderedDependencies.from_destroy_order(["app", "vpc"], ["dns"])


class _FakeProber:
    """Prober double with per-stack behaviour and concurrency tracking."""

    def __init__(self, delay: float = 0.0, crash=(), hang=()):
        self.delay = delay
        self.crash = set(crash)
        self.hang = set(hang)
        self.in_flight = 0
        self.peak = 0
        self.calls: list[str] = []

    async def probe(self, stack: str) -> StackStatus:
        self.calls.append(stack)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            if stack in self.hang:
                await asyncio.Event().wait()
            await asyncio.sleep(self.delay)
            if stack in self.crash:
                raise RuntimeError(f"{stack} blew up")
            return StackStatus(
                stack=stack,
                deployed=True,
                probe_succeeded=True,
                plan=PlanResult(success=True, exit_code=0),
            )
        finally:
            self.in_flight -= 1


class TestRunStatus:
    def test_every_stack_reported_once(self):
        prober = _FakeProber()
        report = asyncio.run(run_status(_ordered(), prober))

        assert list(report.statuses) == ["vpc", "app", "dns"]
        assert sorted(prober.calls) == ["app", "dns", "vpc"]
        assert report.total == 3
        assert report.all_clean

    def test_stacks_probed_concurrently(self):
        prober = _FakeProber(delay=0.05)
        asyncio.run(run_status(_ordered(), prober))
        assert prober.peak == 3

    def test_concurrency_cap(self):
        prober = _FakeProber(delay=0.02)
        ordered = OrderedDependencies.from_destroy_order([], [f"s{i}" for i in range(6)])
        report = asyncio.run(run_status(ordered, prober, max_concurrency=2))

        assert prober.peak <= 2
        assert report.total == 6

    def test_crash_isolated_to_one_stack(self):
        prober = _FakeProber(crash={"app"})
        report = asyncio.run(run_status(_ordered(), prober))

        app = report.statuses["app"]
        assert app.failure_reason == FailureReason.UNKNOWN
        assert "blew up" in (app.error or "")
        assert report.statuses["vpc"].state == "up_to_date"
        assert report.statuses["dns"].state == "up_to_date"

    def test_hanging_stack_times_out_alone(self):
        prober = _FakeProber(hang={"vpc"})
        report = asyncio.run(run_status(_ordered(), prober, probe_timeout=0.1))

        assert report.statuses["vpc"].failure_reason == FailureReason.TIMED_OUT
        assert report.statuses["app"].state == "up_to_date"
        assert report.total == 3

    def test_callback_sees_every_stack(self):
        seen: list[str] = []
        asyncio.run(run_status(_ordered(), _FakeProber(), on_result=lambda s: seen.append(s.stack)))
        assert sorted(seen) == ["app", "dns", "vpc"]

    def test_failing_callback_does_not_lose_results(self):
        def explode(status: StackStatus) -> None:
            raise ValueError("display broke")

        report = asyncio.run(run_status(_ordered(), _FakeProber(), on_result=explode))
        assert report.total == 3

    def test_empty_order(self):
        report = asyncio.run(run_status(OrderedDependencies(), _FakeProber()))
        assert report.total == 0
        assert not report.all_clean


class TestWithMockRunner:
    def test_mixed_fleet(self, scan_root: Path, mock_runner: MockRunner):
        mock_runner.set_response("vpc", "state", stdout=LISTING)
        mock_runner.set_response("vpc", "plan", exit_code=0)
        mock_runner.set_response("app", "state", stdout=LISTING)
        mock_runner.set_response("app", "plan", exit_code=2)
        mock_runner.set_response("dns", "state", stderr="No state file was found!", exit_code=1)

        prober = StackProber(mock_runner, scan_root)
        report = asyncio.run(run_status(_ordered(), prober))

        assert report.up_to_date == 1
        assert report.drifted == 1
        assert report.not_deployed == 1
        assert report.deployed == 2
        assert not report.all_clean
        assert not any(c.subcommand == "plan" for c in mock_runner.calls_for("dns"))

    def test_one_hanging_stack_does_not_block_others(self, scan_root: Path):
        runner = MockRunner(timeout=0.1)
        runner.set_hang("app", "state")
        runner.set_response("vpc", "state", stdout=LISTING)

        prober = StackProber(runner, scan_root)
        report = asyncio.run(run_status(_ordered(), prober))

        assert report.statuses["app"].failure_reason == FailureReason.TIMED_OUT
        assert report.statuses["vpc"].state == "up_to_date"
        assert report.total == 3


class TestStatusReport:
    def test_to_dict(self):
        report = StatusReport(
            ordered=_ordered(),
            statuses={
                "vpc": StackStatus(
                    stack="vpc", deployed=True, plan=PlanResult(success=True, exit_code=0)
                ),
                "app": StackStatus(stack="app", failure_reason=FailureReason.NO_STATE_FILE),
            },
        )
        data = report.to_dict()

        assert data["total"] == 2
        assert data["up_to_date"] == 1
        assert data["not_deployed"] == 1
        assert data["order"]["deploy_order"] == ["vpc", "app"]
        assert data["stacks"][1]["failure_message"] == "No state file found."
