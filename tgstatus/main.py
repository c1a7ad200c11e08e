"""
tgstatus — CLI entrypoint.

Usage:
    tgstatus --help
    tgstatus status ./infra
    tgstatus order --deploy ./infra
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from tgstatus import __version__
from tgstatus.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    resolve_level,
    setup_logging,
)


@click.group()
@click.version_option(version=__version__, prog_name="tgstatus")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging, including raw terragrunt output.")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to .tgstatus.yml (default: searched upward from the scan root).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """tgstatus — deployment and drift status of a Terragrunt monorepo."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
        quiet_third_party=not debug,
    )


from tgstatus.ui.cli.stacks import order, status  # noqa: E402

cli.add_command(status)
cli.add_command(order)


if __name__ == "__main__":
    cli()
