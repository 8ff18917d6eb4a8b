"""
Configuration commands for the Grimoire CLI.

Provides Click-based commands for inspecting the effective configuration.
"""

import json
import logging
from typing import Optional

import click
import yaml

from ..core.config import Config
from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@click.group()
def config_commands() -> None:
    """Configuration management commands."""
    pass


@config_commands.command()
@click.option(
    "--format",
    type=click.Choice(["json", "yaml", "table"]),
    default="table",
    help="Output format",
)
@click.option("--section", help="Show specific configuration section")
def show(format: str, section: Optional[str]) -> None:
    """Show the effective configuration (secrets masked)."""
    try:
        data = Config.from_env().to_dict()
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        raise click.Abort()

    if section:
        if section not in data:
            click.echo(f"Unknown section: {section}", err=True)
            raise click.Abort()
        data = {section: data[section]}

    if format == "json":
        click.echo(json.dumps(data, indent=2, default=str))
    elif format == "yaml":
        click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))
    else:
        click.echo("Grimoire Configuration")
        click.echo("=" * 50)
        for name, values in data.items():
            if isinstance(values, dict):
                click.echo(f"\n{name}:")
                for key, value in values.items():
                    click.echo(f"  {key}: {value}")
            else:
                click.echo(f"{name}: {values}")
