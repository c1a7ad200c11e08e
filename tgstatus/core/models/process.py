"""
SubprocessResult — the outcome of one external command.

Produced once per invocation by the subprocess runner and never
mutated afterwards. Probes read the exit code and the captured
text; presentation code may show the raw output for diagnostics.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SubprocessResult(BaseModel):
    """Captured output and exit code of a finished subprocess."""

    model_config = ConfigDict(frozen=True)

    command: tuple[str, ...] = ()   # executable + args, as launched
    cwd: str = ""
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        """Whether the process exited zero."""
        return self.exit_code == 0
