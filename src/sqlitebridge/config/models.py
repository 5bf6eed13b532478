"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct overrides passed to load_config() (CLI flags)
2. Environment variables (SQLITEBRIDGE__SECTION__KEY)
3. Project config file (sqlitebridge.config.yaml / .yml / .json)
4. Built-in defaults (this file)

Environment Variable Format:
    SQLITEBRIDGE__<KEY>=<VALUE>
    SQLITEBRIDGE__<SECTION>__<KEY>=<VALUE>

Examples:
    SQLITEBRIDGE__WITH_DEXIE=true
    SQLITEBRIDGE__FRAMEWORK_CONFIG__FRAMEWORK=react
    SQLITEBRIDGE__GENERATED_PATH__MODELS=./src/models
    SQLITEBRIDGE__LOGGING__LEVEL=DEBUG
"""

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
Framework = Literal["plain", "react", "angular"]

DEFAULT_MIGRATION_PATTERN = r"^V?(?P<version>\d+)_{1,2}(?P<description>.+)\.sql$"


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use the config file for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        SQLITEBRIDGE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. Generation warnings are also summarized on the console.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class GeneratedPathsConfig(BaseModel):
    """Output locations of generated artifacts, relative to the project root.

    Env vars:
        SQLITEBRIDGE__GENERATED_PATH__MIGRATIONS: Migration runner file
        SQLITEBRIDGE__GENERATED_PATH__MODELS: Model directory
        SQLITEBRIDGE__GENERATED_PATH__DEXIE: Dexie schema file
        SQLITEBRIDGE__GENERATED_PATH__SERVICES: Service directory
        SQLITEBRIDGE__GENERATED_PATH__DATABASE_SERVICE: Database service file
            (default: database.service.ts in the service directory)
    """

    migrations: str = "./src/app/core/database/migrations.ts"
    models: str = "./src/app/core/database/models"
    dexie: str = "./src/app/core/database/dexie-schema.ts"
    services: str = "./src/app/core/database/services"
    database_service: str | None = None


class FrameworkConfig(BaseModel):
    """Target framework for generated services.

    Env vars:
        SQLITEBRIDGE__FRAMEWORK_CONFIG__FRAMEWORK: plain, react or angular
        SQLITEBRIDGE__FRAMEWORK_CONFIG__GENERATE_HOOKS: React query hooks on/off
    """

    framework: Framework = "plain"
    generate_hooks: bool = Field(
        default=True,
        description="Emit one state-subscribing hook per custom query (react only).",
    )


class SqliteBridgeConfig(BaseModel):
    """Root configuration for sqlitebridge."""

    migrations_path: str = "./migrations"
    queries_path: str = "./queries"
    generated_path: GeneratedPathsConfig = Field(default_factory=GeneratedPathsConfig)
    migration_pattern: str = Field(
        default=DEFAULT_MIGRATION_PATTERN,
        description="Regex selecting migration files. A 'version' group supplies the "
        "sequence key, a 'description' group the human-readable name.",
    )
    framework_config: FrameworkConfig = Field(default_factory=FrameworkConfig)
    with_dexie: bool = False
    database_name: str = "AppDatabase"
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("migration_pattern")
    @classmethod
    def validate_migration_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Not a valid regular expression: {e}") from e
        return v

    @field_validator("database_name")
    @classmethod
    def validate_database_name(cls, v: str) -> str:
        if not re.fullmatch(r"[A-Za-z_$][A-Za-z0-9_$]*", v):
            raise ValueError(f"Database name must be a valid class identifier, got {v!r}")
        return v
