"""Core module exports."""

from sqlitebridge.core.diagnostics import (
    Diagnostics,
    GenerationWarning,
    OrphanQueryWarning,
    SkippedStatementWarning,
    UnknownTypeWarning,
)
from sqlitebridge.core.errors import (
    ConfigError,
    ErrorCode,
    MigrationSourceError,
    ParseError,
    SchemaConflictError,
    SqliteBridgeError,
)
from sqlitebridge.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    scoped_logging,
    set_run_id,
)
from sqlitebridge.core.progress import pluralize, spinner, status

__all__ = [
    # Errors
    "SqliteBridgeError",
    "ConfigError",
    "ErrorCode",
    "MigrationSourceError",
    "ParseError",
    "SchemaConflictError",
    # Warnings
    "Diagnostics",
    "GenerationWarning",
    "OrphanQueryWarning",
    "SkippedStatementWarning",
    "UnknownTypeWarning",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "scoped_logging",
    "set_run_id",
    # Progress
    "pluralize",
    "spinner",
    "status",
]
