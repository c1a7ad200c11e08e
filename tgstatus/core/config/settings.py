"""
Settings loader — run configuration from an optional .tgstatus.yml.

Settings are plain data passed explicitly to every component; there
is no process-wide configuration. Precedence, highest first:

    explicit overrides (CLI flags)  >  .tgstatus.yml  >  defaults

The settings file is searched for from the scan root upward, so a
single file at the top of an infrastructure repo covers every
sub-tree scanned from below it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from tgstatus.core.errors import ConfigError

logger = logging.getLogger(__name__)

SETTINGS_FILE = ".tgstatus.yml"

DEFAULT_GRAPH_ARGS = ("graph-dependencies", "--terragrunt-ignore-external-dependencies")
DEFAULT_COMMAND_TIMEOUT = 600.0


class StatusSettings(BaseModel):
    """Everything a status or order run needs from its caller."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    scan_root: Path
    refresh: bool = False                 # plan with refresh + state locking
    terragrunt: str = "terragrunt"
    terraform: str = "terraform"
    command_timeout: float | None = DEFAULT_COMMAND_TIMEOUT   # per subprocess
    probe_timeout: float | None = None    # per stack, both probes together
    max_concurrency: int | None = None    # None = one task per stack, all at once
    graph_args: tuple[str, ...] = Field(default=DEFAULT_GRAPH_ARGS)

    @field_validator("scan_root")
    @classmethod
    def _absolute_root(cls, value: Path) -> Path:
        return value.expanduser().absolute()

    @field_validator("command_timeout", "probe_timeout")
    @classmethod
    def _zero_disables(cls, value: float | None) -> float | None:
        if value is None or value == 0:
            return None
        if value < 0:
            raise ValueError("timeouts must be positive (0 disables)")
        return value

    @field_validator("max_concurrency")
    @classmethod
    def _positive_concurrency(cls, value: int | None) -> int | None:
        if value is not None and value < 1:
            raise ValueError("max_concurrency must be at least 1")
        return value

    @field_validator("graph_args", mode="before")
    @classmethod
    def _split_graph_args(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(value.split())
        return value


def find_settings_file(start_dir: Path) -> Path | None:
    """Search for .tgstatus.yml starting from ``start_dir``, walking up.

    Returns:
        Path to the settings file, or None if not found.
    """
    current = start_dir.expanduser().absolute()

    for _ in range(20):  # safety limit
        candidate = current / SETTINGS_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def read_settings_file(path: Path) -> dict[str, Any]:
    """Read a settings file into a plain mapping.

    Raises:
        ConfigError: If the file is unreadable, not YAML, or not a mapping.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The file may nest everything under a "tgstatus" key or be flat
    if isinstance(data.get("tgstatus"), dict):
        data = data["tgstatus"]
    return dict(data)


def load_settings(
    scan_root: Path,
    *,
    settings_path: Path | None = None,
    **overrides: Any,
) -> StatusSettings:
    """Build validated settings for a run.

    Args:
        scan_root: Directory containing the stacks.
        settings_path: Explicit settings file. If None, searched upward
            from ``scan_root``; a missing file is not an error.
        **overrides: Values that win over the file (None values are ignored).

    Raises:
        ConfigError: If the file or the resulting values are invalid.
    """
    data: dict[str, Any] = {}

    if settings_path is not None and not settings_path.is_file():
        raise ConfigError(f"Settings file not found: {settings_path}")

    path = settings_path or find_settings_file(scan_root)
    if path is not None:
        logger.debug("Loading settings from %s", path)
        data.update(read_settings_file(path))
        data.pop("scan_root", None)

    data.update({k: v for k, v in overrides.items() if v is not None})
    data["scan_root"] = scan_root

    try:
        settings = StatusSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e

    logger.info("Scanning %s (refresh=%s)", settings.scan_root, settings.refresh)
    return settings
