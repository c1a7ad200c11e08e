"""Adapters — process execution for external tools.

Public re-exports for convenient access.
"""

from tgstatus.adapters.mock import MockRunner
from tgstatus.adapters.subprocess_runner import (
    LaunchFailure,
    OutputSink,
    ProcessError,
    SubprocessFailure,
    SubprocessRunner,
    SubprocessTimeout,
)

__all__ = [
    "LaunchFailure",
    "MockRunner",
    "OutputSink",
    "ProcessError",
    "SubprocessFailure",
    "SubprocessRunner",
    "SubprocessTimeout",
]
