"""sqlitebridge all command - every artifact from one parse."""

from pathlib import Path

import click

from sqlitebridge.cli.utils import FILE_OPTION, run_generation


@click.command()
@click.option("-f", "--file", "file", type=FILE_OPTION, help="Use one migration file only")
@click.option(
    "--with-dexie/--without-dexie",
    default=None,
    help="Also generate the Dexie schema (default: withDexie from config)",
)
@click.option(
    "--replace-database-service",
    "replace_database_service",
    is_flag=True,
    help="Overwrite an existing database service",
)
@click.pass_context
def all_command(
    ctx: click.Context,
    file: Path | None,
    with_dexie: bool | None,
    replace_database_service: bool,
) -> None:
    """Generate models, migration runner, services, database service and optional Dexie schema."""
    run_generation(
        ctx,
        lambda ops: ops.generate_all(
            file=file,
            with_dexie=with_dexie,
            replace_database_service=replace_database_service,
        ),
        message="Generating all artifacts",
    )
