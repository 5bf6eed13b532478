"""sqlitebridge service command."""

from pathlib import Path

import click

from sqlitebridge.cli.utils import FILE_OPTION, run_generation


@click.command()
@click.option("-f", "--file", "file", type=FILE_OPTION, help="Use one query file only")
@click.option(
    "-o",
    "--output",
    type=click.Path(file_okay=False, path_type=Path),
    help="Services directory (default: generatedPath.services)",
)
@click.option(
    "--framework",
    type=click.Choice(["plain", "react", "angular"]),
    default=None,
    help="Target framework (default: frameworkConfig.framework)",
)
@click.option(
    "--hooks/--no-hooks",
    "generate_hooks",
    default=None,
    help="React hooks alongside each service (default: frameworkConfig.generateHooks)",
)
@click.pass_context
def service_command(
    ctx: click.Context,
    file: Path | None,
    output: Path | None,
    framework: str | None,
    generate_hooks: bool | None,
) -> None:
    """Generate data access services for every table.

    Named statements from the query files are added to the service of the
    table they are named after.
    """
    run_generation(
        ctx,
        lambda ops: ops.generate_services(
            file=file,
            output=output,
            framework=framework,  # type: ignore[arg-type]
            generate_hooks=generate_hooks,
        ),
        message="Generating services",
    )
