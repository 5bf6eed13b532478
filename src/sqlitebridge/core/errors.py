"""sqlitebridge error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Migration input
- 4xxx: Parse
- 5xxx: Schema
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Migration input (3xxx)
    MIGRATIONS_DIR_NOT_FOUND = 3001
    MIGRATION_DUPLICATE_VERSION = 3002
    MIGRATION_UNPARSABLE_VERSION = 3003
    SOURCE_FILE_NOT_FOUND = 3004

    # Parse (4xxx)
    PARSE_ERROR = 4001

    # Schema (5xxx)
    SCHEMA_CONFLICT = 5001


@dataclass(frozen=True, slots=True)
class SqliteBridgeError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(SqliteBridgeError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class MigrationSourceError(SqliteBridgeError):
    """Problems locating or sequencing migration and query files."""

    @classmethod
    def directory_not_found(cls, path: str) -> "MigrationSourceError":
        return cls(
            code=ErrorCode.MIGRATIONS_DIR_NOT_FOUND,
            message=f"Migrations directory not found: {path}",
            details={"path": path},
        )

    @classmethod
    def duplicate_version(cls, version: int, first: str, second: str) -> "MigrationSourceError":
        return cls(
            code=ErrorCode.MIGRATION_DUPLICATE_VERSION,
            message=f"Migration version {version} is used by both {first} and {second}",
            details={"version": version, "files": [first, second]},
        )

    @classmethod
    def unparsable_version(cls, path: str) -> "MigrationSourceError":
        return cls(
            code=ErrorCode.MIGRATION_UNPARSABLE_VERSION,
            message=f"Cannot derive a numeric version from migration file name: {path}",
            details={"path": path},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "MigrationSourceError":
        return cls(
            code=ErrorCode.SOURCE_FILE_NOT_FOUND,
            message=f"Source file not found: {path}",
            details={"path": path},
        )


class ParseError(SqliteBridgeError):
    """Malformed DDL that cannot be classified."""

    @classmethod
    def at(cls, line: int, excerpt: str, reason: str, source: str | None = None) -> "ParseError":
        location = f"{source}:{line}" if source else f"line {line}"
        return cls(
            code=ErrorCode.PARSE_ERROR,
            message=f"{location}: {reason} near '{excerpt}'",
            details={"line": line, "excerpt": excerpt, "reason": reason, "source": source},
        )

    @property
    def line(self) -> int:
        return int(self.details["line"])

    @property
    def excerpt(self) -> str:
        return str(self.details["excerpt"])

    @property
    def reason(self) -> str:
        return str(self.details["reason"])

    @property
    def source(self) -> str | None:
        return self.details.get("source")


class SchemaConflictError(SqliteBridgeError):
    """Operation inconsistent with the cumulative schema state."""

    @classmethod
    def of(
        cls, table: str, operation: str, reason: str, source: str | None = None
    ) -> "SchemaConflictError":
        origin = f" (in {source})" if source else ""
        return cls(
            code=ErrorCode.SCHEMA_CONFLICT,
            message=f"{operation} on table '{table}': {reason}{origin}",
            details={"table": table, "operation": operation, "reason": reason, "source": source},
        )

    @property
    def table(self) -> str:
        return str(self.details["table"])

    @property
    def operation(self) -> str:
        return str(self.details["operation"])

    @property
    def reason(self) -> str:
        return str(self.details["reason"])
