"""CLI utilities shared by the generation commands."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import nullcontext
from pathlib import Path

import click

from sqlitebridge.config.loader import load_config
from sqlitebridge.config.models import SqliteBridgeConfig
from sqlitebridge.core.errors import SqliteBridgeError
from sqlitebridge.core.logging import clear_run_id, get_logger, scoped_logging, set_run_id
from sqlitebridge.core.progress import pluralize, print_warning_summary, spinner, status
from sqlitebridge.files.ops import create_file_ops
from sqlitebridge.generate.ops import GenerateOps, GenerationResult

log = get_logger("cli")

# File-option type shared by the generation commands
FILE_OPTION = click.Path(exists=True, dir_okay=False, path_type=Path)


def project_root(ctx: click.Context) -> Path:
    project_dir: Path | None = ctx.obj.get("project_dir")
    return (project_dir or Path.cwd()).resolve()


def resolve_config(ctx: click.Context) -> SqliteBridgeConfig:
    """Load the project's configuration, turning config errors into CLI errors."""
    try:
        return load_config(project_root(ctx), config_path=ctx.obj.get("config_path"))
    except SqliteBridgeError as e:
        raise click.ClickException(str(e)) from e


def _log_level(ctx: click.Context, config: SqliteBridgeConfig) -> str:
    if ctx.obj.get("verbose"):
        return "DEBUG"
    if ctx.obj.get("quiet"):
        return "ERROR"
    return config.logging.level


def _display_path(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def report(result: GenerationResult, root: Path, *, dry_run: bool, quiet: bool) -> None:
    """One line per artifact, then the warning summary."""
    if quiet:
        return
    verb = "Would write" if dry_run else "Wrote"
    for artifact in result.artifacts:
        shown = _display_path(artifact.path, root)
        if artifact.kept:
            status(f"{shown} [dim](kept existing file)[/dim]", style="info")
        elif artifact.changed:
            status(f"{verb} {shown}", style="success")
        else:
            status(f"{shown} [dim](unchanged)[/dim]", style="success")
    status(
        f"{pluralize(len(result.artifacts), 'file')} generated, {len(result.changed)} changed",
        style="info",
    )
    print_warning_summary(result.warnings)


def run_generation(
    ctx: click.Context,
    action: Callable[[GenerateOps], GenerationResult],
    *,
    message: str,
) -> GenerationResult:
    """Run one generation with logging scoped to it.

    Generation errors are reported as a CLI error with a non-zero exit code.
    """
    root = project_root(ctx)
    config = resolve_config(ctx)
    logging_config = config.logging.model_copy(update={"level": _log_level(ctx, config)})
    dry_run = bool(ctx.obj.get("dry_run"))
    quiet = bool(ctx.obj.get("quiet"))

    with scoped_logging(logging_config):
        run_id = set_run_id()
        try:
            log.debug("generation_started", command=ctx.info_name, run_id=run_id, root=str(root))
            ops = GenerateOps(config, create_file_ops(dry_run=dry_run), root)
            try:
                with nullcontext() if quiet else spinner(message):
                    result = action(ops)
            except SqliteBridgeError as e:
                log.error("generation_failed", code=int(e.code), error=e.message)
                raise click.ClickException(str(e)) from e
        finally:
            clear_run_id()

    report(result, root, dry_run=dry_run, quiet=quiet)
    return result
