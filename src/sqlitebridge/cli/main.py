"""sqlitebridge CLI - generate TypeScript data access code from SQL migrations."""

from pathlib import Path

import click

from sqlitebridge import __version__
from sqlitebridge.cli.all import all_command
from sqlitebridge.cli.config import config_command
from sqlitebridge.cli.database_service import database_service_command
from sqlitebridge.cli.dexie import dexie_command
from sqlitebridge.cli.migration import migration_command
from sqlitebridge.cli.model import model_command
from sqlitebridge.cli.service import service_command


@click.group()
@click.version_option(version=__version__, prog_name="sqlitebridge")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("-q", "--quiet", is_flag=True, help="Only print errors")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: sqlitebridge.config.yaml in the project directory)",
)
@click.option(
    "--project-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory relative paths are resolved against (default: current directory)",
)
@click.option("--dry-run", is_flag=True, help="Report what would be written without writing")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    config_path: Path | None,
    project_dir: Path | None,
    dry_run: bool,
) -> None:
    """sqlitebridge - typed models, services and migrations from SQLite DDL."""
    if verbose and quiet:
        raise click.UsageError("--verbose and --quiet are mutually exclusive")
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = config_path
    ctx.obj["project_dir"] = project_dir
    ctx.obj["dry_run"] = dry_run


cli.add_command(all_command, name="all")
cli.add_command(model_command, name="model")
cli.add_command(migration_command, name="migration")
cli.add_command(service_command, name="service")
cli.add_command(dexie_command, name="dexie")
cli.add_command(database_service_command, name="database-service")
cli.add_command(config_command, name="config")


if __name__ == "__main__":
    cli()
