"""
Shared test fixtures and configuration.
"""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from tgstatus.adapters.mock import MockRunner
from tgstatus.core.config.settings import StatusSettings


@pytest.fixture
def scan_root(tmp_path: Path) -> Path:
    """A scan root with three stack directories: vpc, app and dns."""
    root = tmp_path / "infra"
    for name in ("vpc", "app", "dns"):
        (root / name).mkdir(parents=True)
    return root


@pytest.fixture
def mock_runner() -> MockRunner:
    return MockRunner()


@pytest.fixture
def settings(scan_root: Path) -> StatusSettings:
    return StatusSettings(scan_root=scan_root)


@pytest.fixture
def fake_tools():
    """Pretend terragrunt and terraform are installed."""
    with patch(
        "tgstatus.core.services.terragrunt.shutil.which",
        side_effect=lambda name: f"/usr/local/bin/{name}",
    ) as which:
        yield which


@pytest.fixture
def python() -> str:
    """Interpreter used to spawn real child processes."""
    return sys.executable


@pytest.fixture
def make_graph():
    """Build DOT text shaped like terragrunt's graph-dependencies output."""
    return _graph_text


def _graph_text(root: Path, *edges: tuple[str, str], nodes: tuple[str, ...] = ()) -> str:
    lines = ["digraph {"]
    seen: list[str] = []
    for name in [*nodes, *(n for edge in edges for n in edge)]:
        if name not in seen:
            seen.append(name)
    for name in seen:
        lines.append(f'\t"{root / name}" ;')
    for source, target in edges:
        lines.append(f'\t"{root / source}" -> "{root / target}";')
    lines.append("}")
    return "\n".join(lines) + "\n"
