"""Root CLI command registration."""

from __future__ import annotations

import click

from ghbackport import __version__

from .backport import backport
from .config import config


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version and exit")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """Backport GitHub pull requests onto other branches."""
    if version:
        click.echo(f"ghbackport {__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(backport)
cli.add_command(config)
