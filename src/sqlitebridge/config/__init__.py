"""Config module exports."""

from sqlitebridge.config.loader import find_config_file, load_config
from sqlitebridge.config.models import (
    FrameworkConfig,
    GeneratedPathsConfig,
    LoggingConfig,
    SqliteBridgeConfig,
)

__all__ = [
    "load_config",
    "find_config_file",
    "SqliteBridgeConfig",
    "FrameworkConfig",
    "GeneratedPathsConfig",
    "LoggingConfig",
]
