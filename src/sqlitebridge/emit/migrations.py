"""Migration emitter: an ordered, ledger-guarded runner for the SQL side."""

from __future__ import annotations

from collections.abc import Sequence

from sqlitebridge.emit.typescript import CodeWriter, file_header, ts_string, ts_template
from sqlitebridge.schema.models import MigrationFile
from sqlitebridge.schema.parser import collapse_whitespace, split_statements

LEDGER_TABLE = "schema_migrations"

_CREATE_LEDGER = (
    f"CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} "
    "(version INTEGER PRIMARY KEY, description TEXT NOT NULL, applied_at TEXT NOT NULL)"
)


def migration_statements(migration: MigrationFile) -> list[str]:
    """Every statement of a migration file, comments removed and whitespace collapsed."""
    return [
        collapse_whitespace(stmt.text)
        for stmt in split_statements(migration.sql, source=migration.name)
    ]


def _write_interfaces(w: CodeWriter) -> None:
    w.line("/** One migration file, applied and recorded as a unit. */")
    with w.block("export interface Migration {"):
        w.line("/** Version number taken from the file name */")
        w.line("version: number;")
        w.line("/** Human-readable description of what this migration does */")
        w.line("description: string;")
        w.line("/** Statements executed in order */")
        w.line("queries: string[];")
    w.blank()
    w.line("/** The part of a database connection the runner needs. */")
    with w.block("export interface MigrationConnection {"):
        w.line("execute(statement: string): Promise<unknown>;")
        w.line("run(statement: string, values?: unknown[]): Promise<unknown>;")
        w.line("query(statement: string, values?: unknown[]): Promise<{ values?: any[] }>;")
    w.blank()


def _write_migrations(w: CodeWriter, migrations: Sequence[MigrationFile]) -> None:
    w.line("/** All migrations in application order. */")
    if not migrations:
        w.line("export const ALL_MIGRATIONS: Migration[] = [];")
        w.blank()
        return
    with w.block("export const ALL_MIGRATIONS: Migration[] = [", "];"):
        for migration in migrations:
            with w.block("{", "},"):
                w.line(f"version: {migration.version},")
                w.line(f"description: {ts_string(migration.description)},")
                statements = migration_statements(migration)
                if not statements:
                    w.line("queries: [],")
                    continue
                with w.block("queries: [", "],"):
                    for statement in statements:
                        w.line(f"{ts_template(statement)},")
    w.blank()


def _write_runner(w: CodeWriter) -> None:
    w.line(f"export const MIGRATIONS_TABLE = {ts_string(LEDGER_TABLE)};")
    w.blank()
    w.line(f"const CREATE_MIGRATIONS_TABLE = {ts_template(_CREATE_LEDGER)};")
    w.blank()
    w.lines(
        [
            "/**",
            " * Apply every migration not yet recorded in the ledger, in version order.",
            " *",
            " * A failing migration stops the run: earlier migrations stay applied and",
            " * the failing one is not recorded, so the next run retries it. Statements",
            " * are not wrapped in a transaction.",
            " *",
            " * @returns Versions applied by this call",
            " */",
        ]
    )
    with w.block(
        "export async function applyMigrations(db: MigrationConnection): Promise<number[]> {"
    ):
        w.line("await db.execute(CREATE_MIGRATIONS_TABLE);")
        w.line(f"const result = await db.query('SELECT version FROM {LEDGER_TABLE}');")
        w.line("const applied = new Set((result.values ?? []).map((row) => Number(row.version)));")
        w.line("const newlyApplied: number[] = [];")
        with w.block("for (const migration of ALL_MIGRATIONS) {"):
            with w.block("if (applied.has(migration.version)) {"):
                w.line("continue;")
            with w.block("for (const statement of migration.queries) {"):
                w.line("await db.execute(statement);")
            w.line("await db.run(")
            with w.indented():
                w.line(
                    f"'INSERT INTO {LEDGER_TABLE} (version, description, applied_at) "
                    "VALUES (?, ?, ?)',"
                )
                w.line("[migration.version, migration.description, new Date().toISOString()],")
            w.line(");")
            w.line("newlyApplied.push(migration.version);")
        w.line("return newlyApplied;")
    w.blank()
    w.line("/** Upgrade statements for the Capacitor SQLite version-upgrade API. */")
    with w.block("export function prepareMigrations(): capSQLiteVersionUpgrade[] {"):
        with w.block("return ALL_MIGRATIONS.map((migration) => ({", "}));"):
            w.line("toVersion: migration.version,")
            with w.block("statements: [", "],"):
                w.line("CREATE_MIGRATIONS_TABLE,")
                w.line("...migration.queries,")
                w.line(
                    f"`INSERT OR IGNORE INTO {LEDGER_TABLE} (version, description, applied_at) "
                    "VALUES (${migration.version}, "
                    "'${migration.description.replace(/'/g, \"''\")}', datetime('now'))`,"
                )


def emit_migration_runner(migrations: Sequence[MigrationFile]) -> str:
    """Render the runner for migrations given in sequence order.

    Raises:
        ParseError: A migration file has an unterminated literal or comment.
    """
    w = CodeWriter()
    file_header(w, "Migration runner.", [m.name for m in migrations] or None)
    w.line("import type { capSQLiteVersionUpgrade } from '@capacitor-community/sqlite';")
    w.blank()
    _write_interfaces(w)
    _write_migrations(w, migrations)
    _write_runner(w)
    return w.render()
