"""sqlitebridge model command."""

from pathlib import Path

import click

from sqlitebridge.cli.utils import FILE_OPTION, run_generation


@click.command()
@click.option("-f", "--file", "file", type=FILE_OPTION, help="Use one migration file only")
@click.option(
    "-o",
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    help="Models directory (default: generatedPath.models)",
)
@click.pass_context
def model_command(ctx: click.Context, file: Path | None, output: Path | None) -> None:
    """Generate one model file per table from the migrations.

    The schema is the fold of every migration in the migrations directory,
    or of FILE alone when --file is given.
    """
    run_generation(
        ctx,
        lambda ops: ops.generate_models(file=file, output=output),
        message="Generating models",
    )
