"""
Logging configuration — central setup for the CLI.

main.py calls setup_logging() exactly once; modules only ever do
``logger = logging.getLogger(__name__)``.

Console level, highest precedence first:
    --debug  >  --verbose  >  --quiet  >  TGSTATUS_LOG_LEVEL  >  WARNING

Optional file output via TGSTATUS_LOG_FILE / TGSTATUS_LOG_FILE_LEVEL.

Raw terragrunt output is logged at DEBUG on ``tgstatus.subprocess``
(see diagnostics.py), so it only reaches the console with --debug.
A log file at DEBUG captures it regardless of the console level.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

ENV_LEVEL = "TGSTATUS_LOG_LEVEL"
ENV_FILE = "TGSTATUS_LOG_FILE"
ENV_FILE_LEVEL = "TGSTATUS_LOG_FILE_LEVEL"

# ── Format strings ──────────────────────────────────────────────

# WARNING and above: message only, the CLI owns the screen
_FMT_MINIMAL = "%(message)s"

# INFO: timestamped with module context
_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"

# DEBUG and file output: full diagnostic with file:line
_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"
_DATEFMT_CONSOLE = "%H:%M:%S"

# Third-party loggers kept at WARNING unless we're at DEBUG
_NOISY_LOGGERS = ("asyncio", "pydot")


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level from CLI flags, falling back to the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if environ is None else environ
    return env.get(ENV_LEVEL, "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install the console handler (and optionally a file handler) on the root logger.

    The root logger is set to the lowest level any handler accepts, so
    a DEBUG log file still receives the raw terragrunt output while
    the console stays at WARNING.

    Args:
        level: Console level name; unknown names fall back to WARNING.
        log_file: Write a full diagnostic log here as well.
        log_file_level: Level for ``log_file`` (default: ``level``).
        quiet_third_party: Hold asyncio/pydot at WARNING below DEBUG.
    """
    console_level = _parse_level(level)
    handlers = [_console_handler(console_level)]
    if log_file:
        file_level = _parse_level(log_file_level or level)
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # Handler errors (a closed stderr) are dropped silently
    logging.raiseExceptions = False


def _console_handler(level: int) -> logging.Handler:
    if level <= logging.DEBUG:
        formatter = logging.Formatter(_FMT_DEBUG, datefmt=_DATEFMT_CONSOLE)
    elif level <= logging.INFO:
        formatter = logging.Formatter(_FMT_VERBOSE, datefmt=_DATEFMT_CONSOLE)
    else:
        formatter = logging.Formatter(_FMT_MINIMAL)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FMT_DEBUG, datefmt=_DATEFMT_FILE))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name → numeric level, WARNING when missing or unknown."""
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
