"""CLI entry point for samlsp."""

import click

from samlsp import __version__
from samlsp.cli import keys as keys_commands
from samlsp.cli import metadata as metadata_commands
from samlsp.cli import sp as sp_commands


@click.group()
@click.version_option(version=__version__, prog_name="samlsp")
@click.option(
    "--log-level",
    type=click.Choice(["ERROR", "INFO", "DEBUG", "TRACE"], case_sensitive=False),
    default=None,
    help="Log metadata exchanges and SP events at this level.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """samlsp - SAML SP bootstrap and IdP metadata tool."""
    ctx.ensure_object(dict)
    if log_level:
        from samlsp.core.logging import configure_logging

        configure_logging(log_level)


cli.add_command(metadata_commands.metadata)
cli.add_command(sp_commands.sp)
cli.add_command(keys_commands.keys)
