"""Configuration inspection commands."""

from __future__ import annotations

import asyncio
import sys

import click
from pydantic import ValidationError

from ghbackport.core.config import BackportConfig
from ghbackport.core.paths import get_config_path


@click.group()
def config() -> None:
    """Inspect or initialize the ghbackport configuration."""


@config.command()
def path() -> None:
    """Print the location of the config file."""
    click.echo(str(get_config_path()))


@config.command()
def show() -> None:
    """Print the effective configuration as TOML."""
    try:
        current = BackportConfig.load()
    except (OSError, ValueError, ValidationError) as exc:
        click.secho(f"Invalid config at {get_config_path()}: {exc}", fg="red", err=True)
        sys.exit(1)
    click.echo(current.to_toml(), nl=False)


@config.command()
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
def init(force: bool) -> None:
    """Write a config file populated with defaults."""
    config_path = get_config_path()
    if config_path.exists() and not force:
        click.secho(f"Config already exists: {config_path}", fg="yellow")
        click.echo("  Hint:      pass --force to overwrite it")
        sys.exit(1)

    asyncio.run(BackportConfig().save(config_path))
    click.secho(f"Wrote {config_path}", fg="green")
