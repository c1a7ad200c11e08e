"""
Tests for tool discovery and dependency discovery.
"""

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from tgstatus.adapters.mock import MockRunner
from tgstatus.core.config.settings import DEFAULT_GRAPH_ARGS
from tgstatus.core.errors import (
    CyclicGraphError,
    GraphDiscoveryError,
    GraphParseError,
    ScanRootNotFoundError,
    ToolNotFoundError,
)
from tgstatus.core.services.terragrunt import (
    check_scan_root,
    discover_dependencies,
    resolve_tools,
)


def _discover(runner: MockRunner, root: Path):
    return asyncio.run(discover_dependencies(runner, "terragrunt", root, DEFAULT_GRAPH_ARGS))


class TestResolveTools:
    def test_both_found(self, fake_tools):
        tools = resolve_tools()
        assert tools.terragrunt == "/usr/local/bin/terragrunt"
        assert tools.terraform == "/usr/local/bin/terraform"

    @patch("tgstatus.core.services.terragrunt.shutil.which")
    def test_missing_terraform_reported_first(self, mock_which):
        mock_which.return_value = None
        with pytest.raises(ToolNotFoundError) as exc:
            resolve_tools()
        assert exc.value.tool == "terraform"
        assert "terraform was not found on this system. Is it in your path?" in str(exc.value)

    @patch("tgstatus.core.services.terragrunt.shutil.which")
    def test_missing_terragrunt(self, mock_which):
        mock_which.side_effect = lambda name: None if name == "terragrunt" else f"/bin/{name}"
        with pytest.raises(ToolNotFoundError) as exc:
            resolve_tools()
        assert exc.value.tool == "terragrunt"


class TestCheckScanRoot:
    def test_existing(self, scan_root: Path):
        assert check_scan_root(scan_root) == scan_root

    def test_missing(self, tmp_path: Path):
        with pytest.raises(ScanRootNotFoundError) as exc:
            check_scan_root(tmp_path / "missing")
        assert exc.value.hint


class TestDiscoverDependencies:
    def test_success(self, scan_root: Path, make_graph):
        runner = MockRunner()
        runner.set_response(
            "graph", "graph-dependencies", stdout=make_graph(scan_root, ("app", "vpc"), nodes=("dns",))
        )
        ordered = _discover(runner, scan_root)

        assert ordered.deploy_order == ("vpc", "app")
        assert ordered.no_deps == ("dns",)
        call = runner.call_log[0]
        assert call.args == DEFAULT_GRAPH_ARGS
        assert call.cwd == str(scan_root)
        assert call.reject_on_nonzero_exit is True

    def test_nonzero_exit_is_fatal(self, scan_root: Path):
        runner = MockRunner()
        runner.set_response(
            "graph", "graph-dependencies", stdout="", stderr="parse error in vpc", exit_code=1
        )
        with pytest.raises(GraphDiscoveryError) as exc:
            _discover(runner, scan_root)
        assert exc.value.details["exit_code"] == 1
        assert exc.value.details["stderr"] == "parse error in vpc"
        assert exc.value.hint

    def test_no_config_marker(self, scan_root: Path):
        runner = MockRunner()
        runner.set_response(
            "graph",
            "graph-dependencies",
            stderr="Could not find any subfolders with Terragrunt configuration files",
            exit_code=1,
        )
        with pytest.raises(GraphDiscoveryError, match="couldn't find any Terragrunt config"):
            _discover(runner, scan_root)

    def test_launch_failure(self, scan_root: Path):
        runner = MockRunner()
        runner.set_launch_failure("graph", "graph-dependencies")
        with pytest.raises(GraphDiscoveryError):
            _discover(runner, scan_root)

    def test_launch_failure_in_missing_root(self, tmp_path: Path):
        runner = MockRunner()
        runner.set_launch_failure("graph", "graph-dependencies")
        with pytest.raises(ScanRootNotFoundError):
            _discover(runner, tmp_path / "missing")

    def test_timeout(self, scan_root: Path):
        runner = MockRunner(timeout=0.05)
        runner.set_hang("graph", "graph-dependencies")
        with pytest.raises(GraphDiscoveryError, match="timed out"):
            _discover(runner, scan_root)

    def test_malformed_output(self, scan_root: Path):
        runner = MockRunner()
        runner.set_response("graph", "graph-dependencies", stdout="this is not dot")
        with pytest.raises(GraphParseError):
            _discover(runner, scan_root)

    def test_cycle(self, scan_root: Path, make_graph):
        runner = MockRunner()
        runner.set_response(
            "graph", "graph-dependencies", stdout=make_graph(scan_root, ("app", "vpc"), ("vpc", "app"))
        )
        with pytest.raises(CyclicGraphError):
            _discover(runner, scan_root)
