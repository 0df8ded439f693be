"""Custom Click group with command aliases and automatic help on errors."""

from typing import Any

import click

COMMAND_ALIASES = {
    "e": "enable",
    "u": "enable",
    "d": "disable",
    "r": "reset",
    "ls": "list",
}


class NprofileGroup(click.Group):
    """Click group that resolves short command aliases and shows help on usage errors.

    Unknown commands and bad subcommand arguments both surface as a
    UsageError inside ``invoke``; the help shown is that of the context
    the error was raised in.
    """

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except click.UsageError as e:
            error_ctx = e.ctx or ctx
            click.echo(f"Error: {e.format_message()}", err=True)
            click.echo("")
            click.echo(error_ctx.get_help())
            error_ctx.exit(e.exit_code)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        """Look up a command by name or alias."""
        command = super().get_command(ctx, cmd_name)
        if command is not None:
            return command
        alias = COMMAND_ALIASES.get(cmd_name)
        if alias is None:
            return None
        return super().get_command(ctx, alias)

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        # Report the canonical name so aliases show up as the real command.
        _, command, remaining = super().resolve_command(ctx, args)
        return (command.name if command else None), command, remaining


__all__ = ["COMMAND_ALIASES", "NprofileGroup"]
