"""CLI entry point for nprofile.

Commands:
    nprofile enable PROFILE [KEY=VALUE,...]    # Enable a profile and its dependencies
    nprofile disable PROFILE [KEY=VALUE,...]   # Disable dependents first, then dependencies
    nprofile reset PROFILE [KEY=VALUE,...]     # Disable then re-enable
    nprofile list                              # Show configured profiles
    nprofile check                             # Validate every profile for an environment
"""

import functools
import logging
import sys
from collections.abc import Callable
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from nprofile import __version__
from nprofile.click_group import NprofileGroup
from nprofile.config_manager import ConfigManager, default_environment
from nprofile.exceptions import NprofileError
from nprofile.executor import PreparedStep
from nprofile.logging_config import configure_logging
from nprofile.models import Action, OutcomeStatus, ProfileConfig, RunResult
from nprofile.orchestrator import Orchestrator
from nprofile.process import run_command
from nprofile.resolver import DependencyResolver

logger = logging.getLogger(__name__)

_STATUS_STYLE = {
    OutcomeStatus.SUCCESS: "[green]done[/green]",
    OutcomeStatus.ALREADY_SATISFIED: "[dim]already satisfied[/dim]",
    OutcomeStatus.CANNOT_ENABLE: "[red]cannot enable[/red]",
    OutcomeStatus.COMMAND_FAILURE: "[red]failed[/red]",
}


class KeyValueParamType(click.ParamType):
    """Comma-separated ``key=value`` pairs, e.g. ``ssid=MyWiFi,device=radio1``."""

    name = "KEY=VALUE[,KEY=VALUE...]"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None):
        if isinstance(value, dict):
            return value
        pairs: dict[str, str] = {}
        for item in str(value).split(","):
            if "=" not in item:
                self.fail(f"Invalid format, expected `key=value` but no `=` found in '{item}'")
            key, _, val = item.partition("=")
            key = key.strip()
            if not key:
                self.fail(f"Empty parameter name in '{item}'")
            pairs[key] = val
        return pairs


KEY_VALUE = KeyValueParamType()


def _fail(message: str, exit_code: int = 1) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(exit_code)


def _load(ctx: click.Context) -> tuple[ProfileConfig, str]:
    """Load the configuration and environment name selected on the group."""
    try:
        config = ConfigManager.load_config(ctx.obj.get("config_path"))
        environment_name = ctx.obj.get("environment_name") or default_environment()
    except NprofileError as e:
        _fail(str(e), e.exit_code)
    return config, environment_name


def action_options(func: Callable) -> Callable:
    """Arguments and options shared by enable, disable and reset."""
    func = click.option(
        "--timeout",
        type=click.FloatRange(min=0, min_open=True),
        default=None,
        help="Kill any single command running longer than this many seconds",
    )(func)
    func = click.option(
        "--dry-run",
        is_flag=True,
        help="Show the execution plan and rendered commands without running them",
    )(func)
    func = click.argument("profile_args", nargs=-1, type=KEY_VALUE)(func)
    func = click.argument("profile_name", type=str)(func)
    return func


@click.group(cls=NprofileGroup, invoke_without_command=True)
@click.option(
    "--config-path",
    "-c",
    envvar="CONFIG_PATH",
    type=click.Path(dir_okay=False),
    help="Path to the profile config file (default: ~/.nprofile/profiles.toml)",
)
@click.option(
    "--environment-name",
    "-e",
    envvar="ENVIRONMENT_NAME",
    help="Environment used to manage profiles (default: linux, macos or windows)",
)
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging")
@click.version_option(version=__version__, prog_name="nprofile")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, environment_name: str | None, debug: bool):
    """nprofile - enable and disable network profiles from one config.

    Profiles are named shell procedures with per-platform environments.
    Profiles may depend on other profiles; dependencies are enabled first
    and disabled last.

    \b
    Examples:
        nprofile enable wifi
        nprofile enable wifi ssid=Office,device=wlan0
        nprofile -e linux-nmcli disable work
        nprofile reset vpn --dry-run
        nprofile list

    \b
    CONFIGURATION:
        Config file: ~/.nprofile/profiles.toml (or --config-path / CONFIG_PATH)
        Environment: --environment-name / ENVIRONMENT_NAME
    """
    configure_logging(debug)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["environment_name"] = environment_name

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


def _run_action(
    ctx: click.Context,
    action: Action,
    profile_name: str,
    profile_args: tuple[dict[str, str], ...],
    dry_run: bool,
    timeout: float | None,
) -> None:
    config, environment_name = _load(ctx)
    overrides: dict[str, str] = {}
    for pairs in profile_args:
        overrides.update(pairs)

    runner = functools.partial(run_command, timeout=timeout) if timeout else run_command
    orchestrator = Orchestrator(config, runner=runner)
    console = Console()

    try:
        if dry_run:
            steps = orchestrator.plan(profile_name, action, environment_name, overrides)
            _print_plan(console, steps)
            return
        result = orchestrator.run(profile_name, action, environment_name, overrides)
    except NprofileError as e:
        _fail(str(e), e.exit_code)

    _print_result(console, result)
    if not result.success:
        sys.exit(result.exit_code)


@main.command(name="enable")
@action_options
@click.pass_context
def enable_command(ctx, profile_name, profile_args, dry_run, timeout):
    """Enable a profile and everything it depends on.

    \b
    Examples:
        nprofile enable wifi
        nprofile enable wifi ssid=Office
        nprofile e work --dry-run
    """
    _run_action(ctx, Action.ENABLE, profile_name, profile_args, dry_run, timeout)


@main.command(name="disable")
@action_options
@click.pass_context
def disable_command(ctx, profile_name, profile_args, dry_run, timeout):
    """Disable a profile, then the profiles it depends on.

    \b
    Examples:
        nprofile disable vpn
        nprofile d work
    """
    _run_action(ctx, Action.DISABLE, profile_name, profile_args, dry_run, timeout)


@main.command(name="reset")
@action_options
@click.pass_context
def reset_command(ctx, profile_name, profile_args, dry_run, timeout):
    """Disable a profile and its dependencies, then enable them again.

    \b
    Examples:
        nprofile reset wifi
        nprofile r work --timeout 30
    """
    _run_action(ctx, Action.RESET, profile_name, profile_args, dry_run, timeout)


@main.command(name="list")
@click.pass_context
def list_command(ctx):
    """List configured profiles."""
    config, _ = _load(ctx)
    console = Console()

    if not len(config):
        console.print("No profiles configured.")
        return

    table = Table(title=f"Profiles ({len(config)})", show_header=True, header_style="bold")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Aliases")
    table.add_column("Dependencies")
    table.add_column("Environments")

    for profile in config:
        dependencies = ", ".join(
            f"{d.name}@{d.environment}" if d.environment else d.name for d in profile.dependencies
        )
        environments = ", ".join(profile.environments) or "[dim]composition[/dim]"
        table.add_row(profile.name, ", ".join(profile.aliases), dependencies, environments)

    console.print(table)


@main.command(name="check")
@click.pass_context
def check_command(ctx):
    """Check that every profile resolves and renders for the environment.

    Reports unknown dependencies, cycles, missing environments and template
    errors without running any command.
    """
    config, environment_name = _load(ctx)
    orchestrator = Orchestrator(config, runner=run_command)
    resolver = DependencyResolver(config)

    problems = {name: str(error) for name, error in resolver.resolve_all(environment_name).items()}
    for profile in config:
        if profile.name in problems:
            continue
        try:
            orchestrator.plan(profile.name, Action.RESET, environment_name)
        except NprofileError as e:
            problems[profile.name] = str(e)

    if not problems:
        click.echo(f"All {len(config)} profiles OK for environment '{environment_name}'")
        return

    for name, message in problems.items():
        click.echo(f"{name}: {message}", err=True)
    sys.exit(1)


def _print_plan(console: Console, steps: list[PreparedStep]) -> None:
    table = Table(title="Execution plan", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Profile", style="cyan")
    table.add_column("Environment")
    table.add_column("Action")
    table.add_column("Commands")

    for number, step in enumerate(steps, 1):
        if step.is_composition:
            commands = "[dim]composition, nothing to run[/dim]"
        else:
            commands = "\n".join(
                f"{stage}: {escape(command)}" for stage, command in step.commands.items()
            )
        table.add_row(
            str(number), step.profile_name, step.environment_name, step.action.value, commands
        )

    console.print(table)


def _print_result(console: Console, result: RunResult) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Profile", style="cyan")
    table.add_column("Environment")
    table.add_column("Action")
    table.add_column("Result")

    for outcome in result.outcomes:
        table.add_row(
            outcome.profile_name,
            outcome.environment_name,
            outcome.action.value,
            _STATUS_STYLE[outcome.status],
        )
    console.print(table)

    failed = result.failed
    if failed is None:
        console.print(f"[green]{result.action.value} {escape(result.target)}: OK[/green]")
    else:
        reason = escape(failed.describe())
        console.print(f"[red]{result.action.value} {escape(result.target)} failed: {reason}[/red]")


__all__ = ["main"]
