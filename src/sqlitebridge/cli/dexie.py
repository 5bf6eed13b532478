"""sqlitebridge dexie command."""

from pathlib import Path

import click

from sqlitebridge.cli.utils import FILE_OPTION, run_generation


@click.command()
@click.option("-f", "--file", "file", type=FILE_OPTION, help="Use one migration file only")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Schema file (default: generatedPath.dexie)",
)
@click.pass_context
def dexie_command(ctx: click.Context, file: Path | None, output: Path | None) -> None:
    """Generate the versioned Dexie schema for the IndexedDB mirror store."""
    run_generation(
        ctx,
        lambda ops: ops.generate_dexie(file=file, output=output),
        message="Generating Dexie schema",
    )
