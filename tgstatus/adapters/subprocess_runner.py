"""
Subprocess runner — launch an external command and capture its output.

This is the only place that spawns processes. Commands are launched
without a shell (argv list, no interpolation). stdout and stderr are
read incrementally as chunks; every chunk is appended to the result
buffer and passed through to an optional output sink for live
diagnostics.

Many runs may be in flight concurrently on one event loop.

Outcomes:
    exit 0                       → SubprocessResult
    exit != 0, reject=False      → SubprocessResult (caller interprets)
    exit != 0, reject=True       → SubprocessFailure (carries the result)
    cannot launch                → LaunchFailure
    exceeded timeout             → SubprocessTimeout (process killed)
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from pathlib import Path

from tgstatus.core.models.process import SubprocessResult

logger = logging.getLogger(__name__)

# Called as sink(label, stream_name, chunk); label is usually the stack id
OutputSink = Callable[[str, str, bytes], None]

DEFAULT_CHUNK_SIZE = 4096

# Seconds to wait for a killed process to be reaped
_REAP_TIMEOUT = 5.0

# Children get their own process group so a timeout kills grandchildren too
_POSIX = hasattr(os, "killpg")


class ProcessError(Exception):
    """Base class for runner failures."""

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str],
        cwd: str,
        result: SubprocessResult | None = None,
    ) -> None:
        super().__init__(message)
        self.command = tuple(command)
        self.cwd = cwd
        self.result = result


class LaunchFailure(ProcessError):
    """The process could not be started at all (missing executable, bad cwd)."""

    def __init__(self, *, command: Sequence[str], cwd: str, cause: OSError) -> None:
        super().__init__(
            f"Could not launch {command[0]!r} in {cwd}: {cause}",
            command=command,
            cwd=cwd,
        )
        self.cause = cause


class SubprocessFailure(ProcessError):
    """The process exited nonzero and the caller asked for rejection."""

    def __init__(self, result: SubprocessResult) -> None:
        super().__init__(
            f"{' '.join(result.command)} exited with code {result.exit_code}",
            command=result.command,
            cwd=result.cwd,
            result=result,
        )

    @property
    def exit_code(self) -> int:
        assert self.result is not None
        return self.result.exit_code


class SubprocessTimeout(ProcessError):
    """The process ran longer than the timeout and was killed."""

    def __init__(self, result: SubprocessResult, timeout: float) -> None:
        super().__init__(
            f"{' '.join(result.command)} timed out after {timeout:g}s",
            command=result.command,
            cwd=result.cwd,
            result=result,
        )
        self.timeout = timeout


class SubprocessRunner:
    """Async subprocess launcher with streamed capture.

    Args:
        sink: Called with every captured chunk, for live diagnostics.
        timeout: Default seconds before a process is killed (None = no limit).
        env: Extra environment variables layered over ``os.environ``.
        chunk_size: Maximum bytes read per chunk.
    """

    def __init__(
        self,
        *,
        sink: OutputSink | None = None,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.sink = sink
        self.timeout = timeout or None
        self.env = dict(env) if env else None
        self.chunk_size = chunk_size

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
        """Run ``executable args...`` in ``cwd`` and capture its output.

        Args:
            executable: Program name or path.
            args: Arguments, passed as a list (no shell).
            cwd: Working directory.
            reject_on_nonzero_exit: Raise SubprocessFailure on exit != 0.
            label: Prefix for the output sink (defaults to ``cwd``).
            timeout: Override the runner's default timeout for this call.

        Returns:
            SubprocessResult with the full stdout/stderr and exit code.
        """
        command = (executable, *args)
        cwd_str = str(cwd)
        label = label or cwd_str
        limit = timeout or self.timeout
        env = {**os.environ, **self.env} if self.env else None

        logger.debug("Executing: %s (cwd=%s)", " ".join(command), cwd_str)
        start = time.monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                cwd=cwd_str,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=_POSIX,
            )
        except OSError as e:
            raise LaunchFailure(command=command, cwd=cwd_str, cause=e) from e

        stdout = bytearray()
        stderr = bytearray()

        def _result(exit_code: int) -> SubprocessResult:
            return SubprocessResult(
                command=command,
                cwd=cwd_str,
                stdout=stdout.decode("utf-8", errors="replace"),
                stderr=stderr.decode("utf-8", errors="replace"),
                exit_code=exit_code,
                duration_ms=int((time.monotonic() - start) * 1000),
            )

        try:
            await asyncio.wait_for(
                asyncio.gather(
                    self._drain(proc.stdout, "stdout", label, stdout),
                    self._drain(proc.stderr, "stderr", label, stderr),
                    proc.wait(),
                ),
                timeout=limit,
            )
        except TimeoutError:
            await _kill(proc)
            logger.warning("Timed out after %gs: %s (cwd=%s)", limit, " ".join(command), cwd_str)
            raise SubprocessTimeout(_result(_exit_code(proc)), limit or 0) from None
        except asyncio.CancelledError:
            await asyncio.shield(_kill(proc))
            raise

        result = _result(_exit_code(proc))
        logger.debug(
            "Exited %d after %dms: %s", result.exit_code, result.duration_ms, " ".join(command)
        )

        if reject_on_nonzero_exit and result.exit_code != 0:
            raise SubprocessFailure(result)
        return result

    async def _drain(
        self,
        stream: asyncio.StreamReader | None,
        stream_name: str,
        label: str,
        buffer: bytearray,
    ) -> None:
        """Accumulate every chunk of ``stream`` and mirror it to the sink."""
        async for chunk in _chunks(stream, self.chunk_size):
            buffer.extend(chunk)
            if self.sink is None:
                continue
            try:
                self.sink(label, stream_name, chunk)
            except Exception as e:
                logger.warning("Output sink failed for %s: %s", label, e)


async def _chunks(stream: asyncio.StreamReader | None, size: int) -> AsyncIterator[bytes]:
    """Yield chunks from ``stream`` until EOF."""
    if stream is None:
        return
    while True:
        chunk = await stream.read(size)
        if not chunk:
            return
        yield chunk


def _exit_code(proc: asyncio.subprocess.Process) -> int:
    """Real exit code (0 included), or -1 when the process was never reaped."""
    return proc.returncode if proc.returncode is not None else -1


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill the process (and its process group on POSIX), then reap it.

    The group is signalled even when the leader has already exited:
    descendants it spawned may still hold the output pipes open.
    """
    try:
        if _POSIX:
            os.killpg(proc.pid, signal.SIGKILL)
        elif proc.returncode is None:
            proc.kill()
    except ProcessLookupError:
        pass
    try:
        await asyncio.wait_for(proc.wait(), timeout=_REAP_TIMEOUT)
    except TimeoutError:
        logger.warning("Process %d did not exit after kill", proc.pid)
