"""
Diagnostic sink — route streamed subprocess output into logging.

Every in-flight terragrunt process shares one diagnostic stream.
Chunks are buffered per (label, stream) until a newline arrives and
then emitted one line per record on the ``tgstatus.subprocess``
logger at DEBUG, so ``--debug`` shows the raw tool output. Logging
handlers serialize emits; lines never tear, though lines from
different stacks interleave in arrival order.
"""

from __future__ import annotations

import logging
import threading

SUBPROCESS_LOGGER = "tgstatus.subprocess"


class LoggingSink:
    """OutputSink that logs each complete line, prefixed with its label."""

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.DEBUG) -> None:
        self.logger = logger or logging.getLogger(SUBPROCESS_LOGGER)
        self.level = level
        self._partial: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def __call__(self, label: str, stream_name: str, chunk: bytes) -> None:
        if not self.logger.isEnabledFor(self.level):
            return
        text = chunk.decode("utf-8", errors="replace")
        key = (label, stream_name)
        with self._lock:
            pending = self._partial.pop(key, "") + text
            *lines, rest = pending.split("\n")
            if rest:
                self._partial[key] = rest
        for line in lines:
            self._emit(label, stream_name, line)

    def flush(self) -> None:
        """Emit any buffered partial lines (output that ended without newline)."""
        with self._lock:
            pending, self._partial = self._partial, {}
        for (label, stream_name), line in pending.items():
            self._emit(label, stream_name, line)

    def _emit(self, label: str, stream_name: str, line: str) -> None:
        line = line.rstrip("\r")
        if line:
            self.logger.log(self.level, "[%s] %s: %s", label, stream_name, line)
