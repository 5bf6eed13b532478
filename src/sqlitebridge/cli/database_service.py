"""sqlitebridge database-service command."""

from pathlib import Path

import click

from sqlitebridge.cli.utils import run_generation


@click.command()
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Service file (default: database.service.ts in generatedPath.services)",
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
    help="React provider and hooks (default: frameworkConfig.generateHooks)",
)
@click.option(
    "--with-dexie/--without-dexie",
    default=None,
    help="Use the Dexie schema on the web (default: withDexie from config)",
)
@click.option(
    "--replace-database-service",
    "replace",
    is_flag=True,
    help="Overwrite an existing database service",
)
@click.pass_context
def database_service_command(
    ctx: click.Context,
    output: Path | None,
    framework: str | None,
    generate_hooks: bool | None,
    with_dexie: bool | None,
    replace: bool,
) -> None:
    """Generate the database service that opens the store and applies migrations.

    The file is meant to be adapted, so an existing one is kept unless
    --replace-database-service is given.
    """
    run_generation(
        ctx,
        lambda ops: ops.generate_database_service(
            output=output,
            framework=framework,  # type: ignore[arg-type]
            generate_hooks=generate_hooks,
            with_dexie=with_dexie,
            replace=replace,
        ),
        message="Generating database service",
    )
