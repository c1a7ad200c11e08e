"""
Terragrunt service — tool discovery and dependency discovery.

Channel-independent: no click, no terminal output. Everything here
is whole-run: a failure raises a TgStatusError and the run stops
before any stack is probed.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from tgstatus.adapters.subprocess_runner import (
    LaunchFailure,
    SubprocessFailure,
    SubprocessTimeout,
)
from tgstatus.core.engine.prober import Runner
from tgstatus.core.errors import (
    GraphDiscoveryError,
    ScanRootNotFoundError,
    ToolNotFoundError,
)
from tgstatus.core.graph.ordering import order_dependencies
from tgstatus.core.graph.parser import parse_graph
from tgstatus.core.models.graph import OrderedDependencies

logger = logging.getLogger(__name__)

_NO_CONFIG_MARKER = "Could not find any subfolders with Terragrunt configuration files"

_GRAPH_HINT = (
    "terragrunt graph-dependencies must exit 0 for tgstatus to run. "
    "There is no way to get it to skip erroring stacks."
)


@dataclass(frozen=True)
class ToolPaths:
    """Resolved executables."""

    terragrunt: str
    terraform: str


def resolve_tools(terragrunt: str = "terragrunt", terraform: str = "terraform") -> ToolPaths:
    """Locate terragrunt and terraform on PATH.

    Terragrunt drives terraform itself; both must be installed even
    though only terragrunt is invoked directly.

    Raises:
        ToolNotFoundError: Naming the first missing tool.
    """
    resolved: dict[str, str] = {}
    for name, tool in (("terraform", terraform), ("terragrunt", terragrunt)):
        path = shutil.which(tool)
        if path is None:
            raise ToolNotFoundError(tool)
        logger.debug("Found %s at %s", name, path)
        resolved[name] = path
    return ToolPaths(terragrunt=resolved["terragrunt"], terraform=resolved["terraform"])


def check_scan_root(scan_root: Path) -> Path:
    """Return the absolute scan root, or raise if it is not a directory."""
    root = scan_root.expanduser().absolute()
    if not root.is_dir():
        raise ScanRootNotFoundError(root)
    return root


async def fetch_dependency_graph(
    runner: Runner,
    terragrunt: str,
    scan_root: Path,
    graph_args: tuple[str, ...],
) -> str:
    """Run the graph subcommand at the scan root and return its DOT output.

    Raises:
        GraphDiscoveryError: If the command cannot run or exits nonzero.
    """
    try:
        result = await runner.run(terragrunt, graph_args, scan_root, label="graph")
    except LaunchFailure as e:
        if isinstance(e.cause, FileNotFoundError) and not scan_root.is_dir():
            raise ScanRootNotFoundError(scan_root) from e
        raise GraphDiscoveryError(
            f"Could not run terragrunt: {e.cause}",
            details={"command": " ".join(e.command)},
        ) from e
    except SubprocessTimeout as e:
        raise GraphDiscoveryError(
            f"Getting the dependency graph timed out after {e.timeout:g}s.",
            hint=_GRAPH_HINT,
        ) from e
    except SubprocessFailure as e:
        result = e.result
        assert result is not None
        if _NO_CONFIG_MARKER in result.stderr:
            raise GraphDiscoveryError(
                f"We couldn't find any Terragrunt config files in {scan_root}.",
                hint="Please ensure it exists. You may need to provide an absolute path.",
            ) from e
        raise GraphDiscoveryError(
            "Getting the dependency graph failed.",
            details={
                "exit_code": result.exit_code,
                "stdout": result.stdout.strip(),
                "stderr": result.stderr.strip(),
            },
            hint=_GRAPH_HINT,
        ) from e

    return result.stdout


async def discover_dependencies(
    runner: Runner,
    terragrunt: str,
    scan_root: Path,
    graph_args: tuple[str, ...],
) -> OrderedDependencies:
    """Graph subcommand → parser → orderer.

    Raises:
        GraphDiscoveryError, GraphParseError, CyclicGraphError
    """
    raw = await fetch_dependency_graph(runner, terragrunt, scan_root, graph_args)
    graph = parse_graph(raw, scan_root)
    return order_dependencies(graph)
