"""Tests for emit/migrations.py module.

Covers:
- migration_statements() cleanup
- emit_migration_runner() ordering, ledger and upgrade helper
"""

from __future__ import annotations

import pytest

from sqlitebridge.core.errors import ParseError
from sqlitebridge.emit.migrations import (
    LEDGER_TABLE,
    emit_migration_runner,
    migration_statements,
)
from sqlitebridge.schema.models import MigrationFile

INIT = MigrationFile(
    version=1,
    description="Create Todos",
    path="migrations/V1__create_todos.sql",
    sql="""\
-- Todo items
CREATE TABLE todos (
    id INTEGER PRIMARY KEY,
    title TEXT NOT NULL
);
INSERT INTO todos (title) VALUES ('Read the docs');
""",
)

ADD_DONE = MigrationFile(
    version=2,
    description="Add Done",
    path="migrations/V2__add_done.sql",
    sql="ALTER TABLE todos ADD COLUMN done BOOLEAN NOT NULL DEFAULT 0;",
)


class TestMigrationStatements:
    """Tests for migration_statements."""

    def test_comments_removed_and_whitespace_collapsed(self) -> None:
        """Statements are flattened to one line each; seed data is kept."""
        assert migration_statements(INIT) == [
            "CREATE TABLE todos ( id INTEGER PRIMARY KEY, title TEXT NOT NULL )",
            "INSERT INTO todos (title) VALUES ('Read the docs')",
        ]

    def test_literal_whitespace_preserved(self) -> None:
        """Whitespace inside string literals is untouched."""
        migration = MigrationFile(1, "Seed", "V1__seed.sql", "INSERT INTO t VALUES ('a   b');")
        assert migration_statements(migration) == ["INSERT INTO t VALUES ('a   b')"]


class TestEmitMigrationRunner:
    """Tests for emit_migration_runner."""

    def test_given_two_migrations_when_emitted_then_listed_in_order(self) -> None:
        """Migrations appear in the given order with their statements."""
        # When
        text = emit_migration_runner([INIT, ADD_DONE])

        # Then
        assert text.index("version: 1,") < text.index("version: 2,")
        assert "description: 'Create Todos'," in text
        assert "`INSERT INTO todos (title) VALUES ('Read the docs')`," in text
        assert "`ALTER TABLE todos ADD COLUMN done BOOLEAN NOT NULL DEFAULT 0`," in text
        assert "-- Todo items" not in text

    def test_runner_and_ledger(self) -> None:
        """The runner guards each migration with the ledger table."""
        text = emit_migration_runner([INIT])
        assert f"export const MIGRATIONS_TABLE = '{LEDGER_TABLE}';" in text
        assert (
            "export async function applyMigrations(db: MigrationConnection): Promise<number[]> {"
            in text
        )
        assert "if (applied.has(migration.version)) {" in text
        assert "export function prepareMigrations(): capSQLiteVersionUpgrade[] {" in text
        assert "import type { capSQLiteVersionUpgrade } from '@capacitor-community/sqlite';" in text

    def test_sources_in_header(self) -> None:
        """The banner lists the migration files."""
        text = emit_migration_runner([INIT, ADD_DONE])
        assert " * Source: V1__create_todos.sql, V2__add_done.sql" in text

    def test_no_migrations(self) -> None:
        """An empty list still renders a working runner."""
        text = emit_migration_runner([])
        assert "export const ALL_MIGRATIONS: Migration[] = [];" in text
        assert "applyMigrations" in text

    def test_empty_file(self) -> None:
        """A file of comments has no statements."""
        text = emit_migration_runner([MigrationFile(1, "Noop", "V1__noop.sql", "-- nothing")])
        assert "queries: []," in text

    def test_backticks_escaped(self) -> None:
        """Statements are safe inside template literals."""
        migration = MigrationFile(1, "Quote", "V1__q.sql", "CREATE TABLE `t` (id INTEGER);")
        assert "`CREATE TABLE \\`t\\` (id INTEGER)`," in emit_migration_runner([migration])

    def test_unterminated_literal(self) -> None:
        """Broken SQL is reported with its file."""
        broken = MigrationFile(3, "Broken", "V3__broken.sql", "INSERT INTO t VALUES ('x);")
        with pytest.raises(ParseError, match="V3__broken.sql"):
            emit_migration_runner([broken])

    def test_deterministic(self) -> None:
        """Rendering twice gives identical text."""
        assert emit_migration_runner([INIT, ADD_DONE]) == emit_migration_runner([INIT, ADD_DONE])
