"""sqlitebridge migration command."""

from pathlib import Path

import click

from sqlitebridge.cli.utils import FILE_OPTION, run_generation


@click.command()
@click.option("-f", "--file", "file", type=FILE_OPTION, help="Use one migration file only")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Runner file (default: generatedPath.migrations)",
)
@click.pass_context
def migration_command(ctx: click.Context, file: Path | None, output: Path | None) -> None:
    """Generate the migration runner with its applied-migrations ledger."""
    run_generation(
        ctx,
        lambda ops: ops.generate_migrations(file=file, output=output),
        message="Generating migration runner",
    )
