"""User-facing console output for CLI runs.

Design principles:
- One line per generated artifact, no spam
- Graceful degradation in non-TTY (CI, pipes)
- Suppress structlog console output during spinners

Usage::

    from sqlitebridge.core.progress import spinner, status

    status("Wrote src/models/todo.ts", style="success")  # ✓ Wrote ...

    with spinner("Parsing 3 migrations"):
        do_work()  # structlog console output suppressed during this block
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from sqlitebridge.core.diagnostics import GenerationWarning

_console = Console(stderr=True)

_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}

_suppress_console_logs = threading.local()


def is_console_suppressed() -> bool:
    """Check if console logging is currently suppressed."""
    return getattr(_suppress_console_logs, "active", False)


@contextmanager
def suppress_console_logs() -> Iterator[None]:
    """Suppress structlog console output; file handlers still receive logs."""
    _suppress_console_logs.active = True
    try:
        yield
    finally:
        _suppress_console_logs.active = False


def _get_logger() -> BoundLogger:
    """Get logger lazily to respect runtime config."""
    from sqlitebridge.core.logging import get_logger

    return get_logger("progress")


def _is_tty() -> bool:
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


def get_console() -> Console:
    """Get the shared Rich console instance."""
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print a styled status message to stderr."""
    prefix = _STYLES.get(style, "")
    padding = " " * indent
    _console.print(f"{padding}{prefix}{message}", highlight=False)

    _get_logger().debug("status", message=message, style=style)


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Return "1 file" or "3 files"."""
    if plural is None:
        plural = singular + "s"
    word = singular if count == 1 else plural
    return f"{count} {word}"


@contextmanager
def spinner(message: str) -> Iterator[None]:
    """Show a spinner while work runs, with structlog console output paused."""
    if _is_tty():
        with suppress_console_logs(), _console.status(f"[cyan]{message}[/cyan]", spinner="dots"):
            yield
    else:
        _console.print(f"{message}...", highlight=False)
        yield


def make_warning_table(warnings: Iterable[GenerationWarning]) -> Table:
    """Build the post-run warning summary table."""
    table = Table(title="Warnings", title_justify="left", show_lines=False)
    table.add_column("Kind", style="yellow", no_wrap=True)
    table.add_column("Source", style="dim")
    table.add_column("Message")
    for warning in warnings:
        table.add_row(warning.kind, warning.source or "-", warning.message)
    return table


def print_warning_summary(warnings: list[GenerationWarning]) -> None:
    if not warnings:
        return
    status(pluralize(len(warnings), "warning"), style="warning")
    _console.print(make_warning_table(warnings))
