"""Configuration loading with pydantic-settings.

Supports loading configuration from multiple sources with precedence:
1. Direct kwargs (highest priority, used for CLI flags)
2. Environment variables (SQLITEBRIDGE__SECTION__KEY)
3. Project config file (sqlitebridge.config.yaml, .yml or .json)
4. Built-in defaults (lowest priority)

The JSON form uses camelCase keys (``migrationsPath``, ``generatedPath``);
keys are normalized to snake_case before validation, so both spellings work.
"""

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from sqlitebridge.config.models import (
    DEFAULT_MIGRATION_PATTERN,
    FrameworkConfig,
    GeneratedPathsConfig,
    LoggingConfig,
    SqliteBridgeConfig,
)
from sqlitebridge.core.errors import ConfigError

CONFIG_FILE_NAMES = (
    "sqlitebridge.config.yaml",
    "sqlitebridge.config.yml",
    "sqlitebridge.config.json",
)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    return data


def _snake_case_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            _CAMEL_BOUNDARY.sub("_", str(k)).lower(): _snake_case_keys(v) for k, v in value.items()
        }
    if isinstance(value, list):
        return [_snake_case_keys(v) for v in value]
    return value


def find_config_file(project_root: Path) -> Path | None:
    """Return the first config file present in the project root."""
    for name in CONFIG_FILE_NAMES:
        candidate = project_root / name
        if candidate.is_file():
            return candidate
    return None


class _YamlSource(PydanticBaseSettingsSource):
    """Settings source that reads from the pre-loaded config file."""

    def __init__(self, settings_cls: type[BaseSettings], yaml_config: dict[str, Any]) -> None:
        super().__init__(settings_cls)
        self._yaml_config = yaml_config

    def get_field_value(
        self,
        field: Any,  # noqa: ARG002
        field_name: str,
    ) -> tuple[Any, str, bool]:
        val = self._yaml_config.get(field_name)
        return val, field_name, val is not None

    def __call__(self) -> dict[str, Any]:
        return self._yaml_config


def _make_settings_class(yaml_config: dict[str, Any]) -> type[BaseSettings]:
    """Create a Settings class with instance-based file source (thread-safe)."""

    class SqliteBridgeSettings(BaseSettings):
        """Root config. Env vars: SQLITEBRIDGE__WITH_DEXIE, SQLITEBRIDGE__LOGGING__LEVEL, etc."""

        model_config = SettingsConfigDict(
            env_prefix="SQLITEBRIDGE__",
            env_nested_delimiter="__",
            case_sensitive=False,
        )

        migrations_path: str = "./migrations"
        queries_path: str = "./queries"
        generated_path: GeneratedPathsConfig = GeneratedPathsConfig()
        migration_pattern: str = DEFAULT_MIGRATION_PATTERN
        framework_config: FrameworkConfig = FrameworkConfig()
        with_dexie: bool = False
        database_name: str = "AppDatabase"
        logging: LoggingConfig = LoggingConfig()

        @classmethod
        def settings_customise_sources(
            cls,
            settings_cls: type[BaseSettings],
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
            file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        ) -> tuple[PydanticBaseSettingsSource, ...]:
            # Precedence (first wins): init kwargs > env vars > config file
            return (init_settings, env_settings, _YamlSource(settings_cls, yaml_config))

    return SqliteBridgeSettings


def load_config(
    project_root: Path | None = None,
    *,
    config_path: Path | None = None,
    **kwargs: Any,
) -> SqliteBridgeConfig:
    """Load config: defaults < config file < env vars < kwargs.

    Args:
        project_root: Directory searched for a config file.
                      Defaults to current working directory.
        config_path: Explicit config file; must exist when given.
        **kwargs: Override values (highest precedence).

    Returns:
        Fully resolved configuration object.

    Raises:
        ConfigError: On unreadable config files or validation errors.
    """
    project_root = project_root or Path.cwd()

    if config_path is not None:
        if not config_path.is_file():
            raise ConfigError.file_not_found(str(config_path))
        source: Path | None = config_path
    else:
        source = find_config_file(project_root)

    yaml_config = _snake_case_keys(_load_yaml(source)) if source else {}

    settings_cls = _make_settings_class(yaml_config)
    try:
        settings = settings_cls(**kwargs)
        return SqliteBridgeConfig.model_validate(settings.model_dump())
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
