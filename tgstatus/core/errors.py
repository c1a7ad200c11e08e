"""
Error taxonomy — whole-run fatal errors.

These abort a run before any per-stack status is produced. Per-stack
problems are never raised; they are classified into StackStatus.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any


class TgStatusError(Exception):
    """Base class for errors that abort the whole run.

    Carries a short title, a message and optional detail lines and
    hint so the CLI can render a structured diagnosis.
    """

    title = "Error"

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.hint = hint

    def __str__(self) -> str:
        lines = [self.message]
        for key, value in self.details.items():
            lines.append(f"{key}={value}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": type(self).__name__,
            "title": self.title,
            "message": self.message,
        }
        if self.details:
            data["details"] = {k: str(v) for k, v in self.details.items()}
        if self.hint:
            data["hint"] = self.hint
        return data


class ConfigError(TgStatusError):
    """Raised when settings are invalid or the settings file is unreadable."""

    title = "Invalid configuration"


class ToolNotFoundError(TgStatusError):
    """A required external tool is not on PATH."""

    title = "Tool not found"

    def __init__(self, tool: str) -> None:
        super().__init__(
            f"{tool} was not found on this system. Is it in your path?",
            details={"tool": tool},
        )
        self.tool = tool


class ScanRootNotFoundError(TgStatusError):
    """The directory to scan does not exist."""

    title = "Directory not found"

    def __init__(self, scan_root: Path) -> None:
        super().__init__(
            f"We couldn't find the directory {scan_root}.",
            details={"scan_root": scan_root},
            hint="Please ensure it exists. You may need to provide an absolute path.",
        )
        self.scan_root = scan_root


class GraphDiscoveryError(TgStatusError):
    """The dependency-graph subcommand failed; there is no partial graph."""

    title = "Dependency graph unavailable"


class GraphParseError(TgStatusError):
    """The dependency-graph output is not valid DOT text."""

    title = "Malformed dependency graph"


class CyclicGraphError(TgStatusError):
    """The dependency relation contains a cycle; no order exists."""

    title = "Cyclic dependency graph"

    def __init__(self, cycle: list[tuple[str, str]]) -> None:
        path = " -> ".join([src for src, _dst in cycle] + [cycle[0][0]]) if cycle else "?"
        super().__init__(
            f"Stacks depend on each other in a cycle: {path}",
            details={"cycle": path},
        )
        self.cycle = cycle
