"""sqlitebridge config command - show the resolved configuration."""

import click
import yaml

from sqlitebridge.cli.utils import resolve_config


@click.command()
@click.pass_context
def config_command(ctx: click.Context) -> None:
    """Print the configuration after defaults, config file and environment are merged."""
    config = resolve_config(ctx)
    click.echo(yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False), nl=False)
