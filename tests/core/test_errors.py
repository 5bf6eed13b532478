"""Tests for core/errors.py module.

Covers:
- ErrorCode ranges
- SqliteBridgeError formatting and serialization
- Factory classmethods of every error family
"""

from __future__ import annotations

import pytest

from sqlitebridge.core.errors import (
    ConfigError,
    ErrorCode,
    MigrationSourceError,
    ParseError,
    SchemaConflictError,
    SqliteBridgeError,
)


class TestErrorCode:
    """Tests for ErrorCode ranges."""

    @pytest.mark.parametrize(
        ("code", "prefix"),
        [
            (ErrorCode.CONFIG_PARSE_ERROR, 2),
            (ErrorCode.MIGRATIONS_DIR_NOT_FOUND, 3),
            (ErrorCode.PARSE_ERROR, 4),
            (ErrorCode.SCHEMA_CONFLICT, 5),
        ],
    )
    def test_code_range(self, code: ErrorCode, prefix: int) -> None:
        """Each family lives in its own thousand range."""
        assert code.value // 1000 == prefix


class TestSqliteBridgeError:
    """Tests for the base error."""

    def test_str_includes_code_and_name(self) -> None:
        """String form carries the numeric code and the code name."""
        err = ParseError.at(3, "CREAT", "bad keyword", "V1.sql")
        assert str(err) == "[4001] PARSE_ERROR: V1.sql:3: bad keyword near 'CREAT'"

    def test_to_dict(self) -> None:
        """to_dict serializes every field."""
        err = ConfigError.file_not_found("/tmp/x.yaml")
        assert err.to_dict() == {
            "code": 2004,
            "error": "CONFIG_FILE_NOT_FOUND",
            "message": "Config file not found: /tmp/x.yaml",
            "details": {"path": "/tmp/x.yaml"},
        }

    def test_is_raisable(self) -> None:
        """Subclasses can be raised and caught as the base error."""
        with pytest.raises(SqliteBridgeError) as exc_info:
            raise MigrationSourceError.directory_not_found("migrations")
        assert exc_info.value.code is ErrorCode.MIGRATIONS_DIR_NOT_FOUND

    def test_chained_raise_keeps_cause(self) -> None:
        """Frozen errors still accept a __cause__ when raised from another error."""
        with pytest.raises(ConfigError) as exc_info:
            try:
                raise ValueError("inner")
            except ValueError as e:
                raise ConfigError.parse_error("a.yaml", "bad") from e
        assert isinstance(exc_info.value.__cause__, ValueError)


class TestMigrationSourceError:
    """Tests for migration input errors."""

    def test_duplicate_version_names_both_files(self) -> None:
        """Both colliding files appear in the message and details."""
        err = MigrationSourceError.duplicate_version(3, "V3__a.sql", "V3__b.sql")
        assert "V3__a.sql" in err.message
        assert "V3__b.sql" in err.message
        assert err.details["files"] == ["V3__a.sql", "V3__b.sql"]

    def test_unparsable_version(self) -> None:
        """Unparsable version carries its own code."""
        err = MigrationSourceError.unparsable_version("Vx__init.sql")
        assert err.code is ErrorCode.MIGRATION_UNPARSABLE_VERSION


class TestParseError:
    """Tests for ParseError."""

    def test_given_source_when_at_then_message_has_location(self) -> None:
        """Source and line prefix the message."""
        # Given / When
        err = ParseError.at(4, "CREATE TABLE (", "malformed CREATE TABLE", "V1__init.sql")

        # Then
        assert err.message == "V1__init.sql:4: malformed CREATE TABLE near 'CREATE TABLE ('"
        assert err.line == 4
        assert err.excerpt == "CREATE TABLE ("
        assert err.reason == "malformed CREATE TABLE"
        assert err.source == "V1__init.sql"

    def test_given_no_source_when_at_then_line_only(self) -> None:
        """Without a source the line number alone locates the error."""
        err = ParseError.at(2, "x", "bad")
        assert err.message.startswith("line 2: ")
        assert err.source is None


class TestSchemaConflictError:
    """Tests for SchemaConflictError."""

    def test_message_names_table_and_operation(self) -> None:
        """Table, operation and origin appear in the message."""
        err = SchemaConflictError.of("todos", "ADD COLUMN", "column 'x' already exists", "V2.sql:1")
        assert err.message == (
            "ADD COLUMN on table 'todos': column 'x' already exists (in V2.sql:1)"
        )
        assert err.table == "todos"
        assert err.operation == "ADD COLUMN"
        assert err.reason == "column 'x' already exists"

    def test_without_source(self) -> None:
        """No origin suffix when the source is unknown."""
        err = SchemaConflictError.of("todos", "DROP TABLE", "table does not exist")
        assert err.message.endswith("table does not exist")
