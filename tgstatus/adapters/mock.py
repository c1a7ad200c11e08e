"""
Mock runner — scripted stand-in for SubprocessRunner.

Used in tests to simulate terragrunt without touching external
tools. Responses are keyed by (label, subcommand), where label is
the stack id the prober passes and subcommand is the first argument
(``state``, ``plan``, ``graph-dependencies``...).
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from tgstatus.adapters.subprocess_runner import (
    LaunchFailure,
    SubprocessFailure,
    SubprocessTimeout,
)
from tgstatus.core.models.process import SubprocessResult


@dataclass(frozen=True)
class MockCall:
    """One recorded invocation."""

    executable: str
    args: tuple[str, ...]
    cwd: str
    label: str
    reject_on_nonzero_exit: bool

    @property
    def subcommand(self) -> str:
        return self.args[0] if self.args else ""


@dataclass(frozen=True)
class _Scripted:
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    launch_error: bool = False
    hang: bool = False


class MockRunner:
    """Universal mock runner for testing.

    By default every command exits zero with empty output. Can be
    configured per (label, subcommand) to return custom output, fail
    to launch, or hang until the mock's timeout expires.
    """

    def __init__(self, *, timeout: float | None = None) -> None:
        self.timeout = timeout
        self._responses: dict[tuple[str, str], _Scripted] = {}
        self._call_log: list[MockCall] = []

    @property
    def call_log(self) -> list[MockCall]:
        """All invocations this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_for(self, label: str) -> list[MockCall]:
        return [c for c in self._call_log if c.label == label]

    def set_response(
        self,
        label: str,
        subcommand: str,
        *,
        stdout: str = "",
        stderr: str = "",
        exit_code: int = 0,
    ) -> None:
        """Script the output of ``subcommand`` for ``label``."""
        self._responses[(label, subcommand)] = _Scripted(
            stdout=stdout, stderr=stderr, exit_code=exit_code
        )

    def set_launch_failure(self, label: str, subcommand: str) -> None:
        """Make ``subcommand`` fail to start, as if the executable were missing."""
        self._responses[(label, subcommand)] = _Scripted(launch_error=True)

    def set_hang(self, label: str, subcommand: str) -> None:
        """Make ``subcommand`` never finish on its own."""
        self._responses[(label, subcommand)] = _Scripted(hang=True)

    async def run(
        self,
        executable: str,
        args: Sequence[str],
        cwd: str | Path,
        *,
        reject_on_nonzero_exit: bool = True,
        label: str | None = None,
        timeout: float | None = None,
    ) -> SubprocessResult:
        call = MockCall(
            executable=executable,
            args=tuple(args),
            cwd=str(cwd),
            label=label or str(cwd),
            reject_on_nonzero_exit=reject_on_nonzero_exit,
        )
        self._call_log.append(call)
        scripted = self._responses.get((call.label, call.subcommand), _Scripted())
        command = (executable, *call.args)

        if scripted.launch_error:
            raise LaunchFailure(
                command=command,
                cwd=call.cwd,
                cause=FileNotFoundError(2, "No such file or directory", executable),
            )

        if scripted.hang:
            limit = timeout or self.timeout
            try:
                await asyncio.wait_for(asyncio.Event().wait(), timeout=limit)
            except TimeoutError:
                result = SubprocessResult(command=command, cwd=call.cwd, exit_code=-9)
                raise SubprocessTimeout(result, limit or 0) from None

        # Yield once so concurrent callers interleave like real processes
        await asyncio.sleep(0)

        result = SubprocessResult(
            command=command,
            cwd=call.cwd,
            stdout=scripted.stdout,
            stderr=scripted.stderr,
            exit_code=scripted.exit_code,
        )
        if reject_on_nonzero_exit and result.exit_code != 0:
            raise SubprocessFailure(result)
        return result

    def reset(self) -> None:
        """Clear call log and scripted responses."""
        self._call_log.clear()
        self._responses.clear()
