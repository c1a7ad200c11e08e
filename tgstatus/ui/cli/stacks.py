"""
CLI commands for stack status and ordering.

Thin wrappers over ``tgstatus.core.use_cases.status``.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from tgstatus.core.config.settings import StatusSettings
from tgstatus.core.errors import ConfigError, TgStatusError
from tgstatus.core.models.status import StackStatus

_STATE_STYLE: dict[str, tuple[str, str]] = {
    "up_to_date": ("✅", "green"),
    "drifted": ("🔄", "yellow"),
    "plan_failed": ("❌", "red"),
    "not_deployed": ("⬜", "white"),
    "unknown": ("❓", "magenta"),
}


def _load_settings(ctx: click.Context, path: str, **overrides) -> StatusSettings:
    """Settings for ``path``, or print the problem and exit 1."""
    from tgstatus.core.config.settings import load_settings

    try:
        return load_settings(
            Path(path),
            settings_path=ctx.obj.get("config_path"),
            **overrides,
        )
    except ConfigError as e:
        _print_failure(e)
        sys.exit(1)


def _print_failure(error: TgStatusError) -> None:
    click.secho(f"❌ {error.title}: {error.message}", fg="red", err=True)
    for key, value in error.details.items():
        text = str(value).strip()
        if "\n" in text:
            click.echo(f"   {key}:", err=True)
            for line in text.splitlines():
                click.echo(f"      {line}", err=True)
        else:
            click.echo(f"   {key}: {text}", err=True)
    if error.hint:
        click.secho(f"   💡 {error.hint}", fg="yellow", err=True)


def describe(status: StackStatus) -> str:
    """One-line explanation of a stack's state."""
    state = status.state
    if state == "up_to_date":
        return "deployed, up to date"
    if state == "drifted":
        return "deployed, plan has changes"
    if state == "plan_failed":
        plan = status.plan
        if plan is not None and plan.exit_code is not None:
            return f"deployed, plan failed (exit {plan.exit_code})"
        return "deployed, plan failed"
    reason = status.failure_reason
    message = reason.message if reason is not None else "Unknown"
    if state == "not_deployed":
        return f"not deployed. {message}"
    return f"unknown. {message}"


def _print_stack(status: StackStatus) -> None:
    icon, color = _STATE_STYLE.get(status.state, ("•", "white"))
    click.secho(f"   {icon} {status.stack:<40} ", fg=color, nl=False)
    click.echo(describe(status))
    if status.error:
        click.echo(f"      {status.error}")


# ── Status ──────────────────────────────────────────────────────


@click.command("status")
@click.argument("path", type=click.Path(file_okay=False), default=".")
@click.option(
    "--refresh",
    "-r",
    is_flag=True,
    help="Refresh state and take locks while planning (slower).",
)
@click.option(
    "--timeout",
    "command_timeout",
    type=float,
    default=None,
    help="Seconds before a terragrunt command is killed (0 disables).",
)
@click.option(
    "--max-concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum number of stacks probed at once.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(
    ctx: click.Context,
    path: str,
    refresh: bool,
    command_timeout: float | None,
    max_concurrency: int | None,
    as_json: bool,
) -> None:
    """Show whether each stack under PATH is deployed and up to date."""
    from tgstatus.core.use_cases.status import get_status

    settings = _load_settings(
        ctx,
        path,
        refresh=refresh or None,
        command_timeout=command_timeout,
        max_concurrency=max_concurrency,
    )
    quiet = ctx.obj.get("quiet", False)

    if not as_json and not quiet:
        click.secho(f"🔍 Checking stacks in {settings.scan_root}...", fg="cyan")
        if settings.refresh:
            click.echo("   Refreshing state while planning")
        click.echo()

    result = get_status(settings, on_result=None if as_json else _print_stack)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.failure is not None:
        _print_failure(result.failure)
        sys.exit(1)

    report = result.report
    assert report is not None  # guaranteed after error check above

    if report.total == 0:
        click.echo("   📁 No stacks found")
        click.echo()
        return

    click.echo()
    click.secho(f"   Stacks: {report.total}", fg="white", bold=True)
    click.secho(f"      ✅ {report.up_to_date} up to date", fg="green")
    if report.drifted:
        click.secho(f"      🔄 {report.drifted} with changes", fg="yellow")
    if report.plan_failed:
        click.secho(f"      ❌ {report.plan_failed} plan failed", fg="red")
    if report.not_deployed:
        click.echo(f"      ⬜ {report.not_deployed} not deployed")
    if report.unknown:
        click.secho(f"      ❓ {report.unknown} unknown", fg="magenta")
    if not quiet:
        click.echo(f"   ⏱️  {report.duration_ms / 1000:.1f}s")
    click.echo()


# ── Order ───────────────────────────────────────────────────────


@click.command("order")
@click.argument("path", type=click.Path(file_okay=False), default=".")
@click.option("--deploy", "-d", "show_deploy", is_flag=True, help="Print a legal deploy order.")
@click.option("--destroy", "-x", "show_destroy", is_flag=True, help="Print a legal destroy order.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def order(
    ctx: click.Context,
    path: str,
    show_deploy: bool,
    show_destroy: bool,
    as_json: bool,
) -> None:
    """Print the order stacks under PATH can be deployed or destroyed in."""
    from tgstatus.core.use_cases.status import get_order

    settings = _load_settings(ctx, path)
    result = get_order(settings)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(1 if result.error else 0)

    if result.failure is not None:
        _print_failure(result.failure)
        sys.exit(1)

    if not show_deploy and not show_destroy:
        show_deploy = show_destroy = True

    ordered = result.ordered
    if show_deploy:
        click.secho("🚀 Deploy order:", fg="cyan", bold=True)
        _print_numbered(ordered.deploy_order)
    if show_destroy:
        click.secho("🗑️  Destroy order:", fg="cyan", bold=True)
        _print_numbered(ordered.destroy_order)
    if ordered.no_deps:
        click.secho("🔀 Any order:", fg="cyan", bold=True)
        for stack in ordered.no_deps:
            click.echo(f"      • {stack}")
        click.echo()


def _print_numbered(stacks: tuple[str, ...]) -> None:
    if not stacks:
        click.echo("      (no stacks with dependencies)")
    for index, stack in enumerate(stacks, start=1):
        click.echo(f"   {index:>4}. {stack}")
    click.echo()
