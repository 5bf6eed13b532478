"""Tests for schema/reducer.py module.

Covers:
- reduce() folding of every operation kind
- Conflicts raised for operations that do not fit the prior state
- Case-insensitive identifier resolution
- Order sensitivity
"""

from __future__ import annotations

import pytest

from sqlitebridge.core.errors import SchemaConflictError
from sqlitebridge.schema.models import (
    CreateIndex,
    CreateTable,
    DdlOperation,
    ForeignKeyRef,
    IndexDefinition,
    MigrationFile,
    SchemaModel,
)
from sqlitebridge.schema.parser import parse, parse_migration
from sqlitebridge.schema.reducer import SchemaBuilder, reduce


def _reduce(*sql: str) -> SchemaModel:
    operations: list[DdlOperation] = []
    for text in sql:
        operations.extend(parse(text))
    return reduce(operations)


TODOS = "CREATE TABLE todos (id INTEGER PRIMARY KEY, title TEXT NOT NULL, done BOOLEAN)"


class TestReduceCreate:
    """Tests for table creation."""

    def test_given_create_when_reduced_then_table_present(self) -> None:
        """A created table appears with its columns and key."""
        # Given / When
        schema = _reduce(TODOS)

        # Then
        table = schema.table("todos")
        assert table is not None
        assert table.column_names == ["id", "title", "done"]
        assert table.primary_key == ("id",)
        assert table.key_column is not None
        assert table.key_column.name == "id"

    def test_empty_log(self) -> None:
        """No operations yields no tables."""
        schema = reduce([])
        assert schema.tables == {}
        assert schema.operations == ()

    def test_duplicate_create_conflicts(self) -> None:
        """Creating an existing table is a conflict, even with IF NOT EXISTS."""
        with pytest.raises(SchemaConflictError, match="already exists"):
            _reduce(TODOS, "CREATE TABLE IF NOT EXISTS TODOS (id INTEGER)")

    def test_duplicate_column_conflicts(self) -> None:
        """A column declared twice is a conflict."""
        with pytest.raises(SchemaConflictError, match="declared twice"):
            _reduce("CREATE TABLE t (a TEXT, A INTEGER)")

    def test_composite_primary_key(self) -> None:
        """A table-level key marks its columns as key columns."""
        schema = _reduce(
            "CREATE TABLE memberships (user_id INTEGER, group_id INTEGER, "
            "PRIMARY KEY (user_id, group_id))"
        )
        table = schema.table("memberships")
        assert table is not None
        assert table.primary_key == ("user_id", "group_id")
        assert table.key_column is None
        assert all(c.primary_key and not c.nullable for c in table.columns)

    def test_two_primary_keys_conflict(self) -> None:
        """Only one primary key per table."""
        with pytest.raises(SchemaConflictError, match="more than one primary key"):
            _reduce("CREATE TABLE t (a INTEGER PRIMARY KEY, b INTEGER, PRIMARY KEY (b))")

    def test_table_foreign_key_applied_to_column(self) -> None:
        """FOREIGN KEY constraints become column references."""
        schema = _reduce(
            "CREATE TABLE users (id INTEGER PRIMARY KEY)",
            "CREATE TABLE posts (id INTEGER PRIMARY KEY, author INTEGER, "
            "FOREIGN KEY (author) REFERENCES users(id))",
        )
        posts = schema.table("posts")
        assert posts is not None
        author = posts.column("author")
        assert author is not None
        assert author.references == ForeignKeyRef("users", "id")

    def test_composite_unique_becomes_index(self) -> None:
        """Multi-column UNIQUE constraints are kept as unique indexes."""
        schema = _reduce("CREATE TABLE t (a TEXT, b TEXT, UNIQUE (a, b))")
        table = schema.table("t")
        assert table is not None
        assert table.indexes == (
            IndexDefinition(name="t_a_b_unique", columns=("a", "b"), unique=True),
        )


class TestReduceAlter:
    """Tests for column-level operations."""

    def test_add_column_appends(self) -> None:
        """Added columns go after existing ones."""
        schema = _reduce(TODOS, "ALTER TABLE todos ADD COLUMN due TEXT")
        table = schema.table("todos")
        assert table is not None
        assert table.column_names == ["id", "title", "done", "due"]

    def test_add_existing_column_conflicts(self) -> None:
        """A column name can only be added once, case-insensitively."""
        with pytest.raises(SchemaConflictError, match="already exists"):
            _reduce(TODOS, "ALTER TABLE todos ADD COLUMN Title TEXT")

    def test_add_to_missing_table_conflicts(self) -> None:
        """Altering a missing table is a conflict naming the table."""
        with pytest.raises(SchemaConflictError) as exc_info:
            _reduce("ALTER TABLE ghosts ADD COLUMN x TEXT")
        assert exc_info.value.table == "ghosts"
        assert exc_info.value.operation == "ADD COLUMN"

    def test_drop_column(self) -> None:
        """Dropped columns disappear."""
        schema = _reduce(TODOS, "ALTER TABLE todos DROP COLUMN done")
        table = schema.table("todos")
        assert table is not None
        assert table.column_names == ["id", "title"]

    def test_drop_missing_column_conflicts(self) -> None:
        """Dropping an unknown column is a conflict."""
        with pytest.raises(SchemaConflictError, match="does not exist"):
            _reduce(TODOS, "ALTER TABLE todos DROP COLUMN nope")

    def test_drop_primary_key_conflicts(self) -> None:
        """The key column cannot be dropped."""
        with pytest.raises(SchemaConflictError, match="primary key"):
            _reduce(TODOS, "ALTER TABLE todos DROP COLUMN id")

    def test_drop_indexed_column_conflicts(self) -> None:
        """A column used by an index cannot be dropped."""
        with pytest.raises(SchemaConflictError, match="used by an index"):
            _reduce(
                TODOS, "CREATE INDEX idx_title ON todos (title)", "ALTER TABLE todos DROP title"
            )

    def test_drop_only_column_conflicts(self) -> None:
        """A table keeps at least one column."""
        with pytest.raises(SchemaConflictError, match="only column"):
            _reduce("CREATE TABLE t (a TEXT)", "ALTER TABLE t DROP COLUMN a")

    def test_rename_column_keeps_position_and_indexes(self) -> None:
        """Renamed columns stay in place and indexes follow them."""
        schema = _reduce(
            TODOS,
            "CREATE INDEX idx_title ON todos (title)",
            "ALTER TABLE todos RENAME COLUMN title TO name",
        )
        table = schema.table("todos")
        assert table is not None
        assert table.column_names == ["id", "name", "done"]
        assert table.indexes[0].columns == ("name",)

    def test_rename_to_existing_column_conflicts(self) -> None:
        """Renaming onto another column is a conflict."""
        with pytest.raises(SchemaConflictError):
            _reduce(TODOS, "ALTER TABLE todos RENAME COLUMN title TO done")

    def test_alter_column_patches_properties(self) -> None:
        """ALTER COLUMN changes only what it names."""
        schema = _reduce(
            TODOS,
            "ALTER TABLE todos ALTER COLUMN done SET NOT NULL",
            "ALTER TABLE todos ALTER COLUMN done SET DEFAULT 0",
        )
        table = schema.table("todos")
        assert table is not None
        done = table.column("done")
        assert done is not None
        assert done.nullable is False
        assert done.default == "0"
        assert done.sql_type == "BOOLEAN"

    def test_alter_key_nullable_conflicts(self) -> None:
        """A key column cannot become nullable."""
        with pytest.raises(SchemaConflictError, match="cannot be nullable"):
            _reduce(TODOS, "ALTER TABLE todos ALTER COLUMN id DROP NOT NULL")


class TestReduceTables:
    """Tests for table-level operations."""

    def test_rename_table(self) -> None:
        """Renamed tables keep their shape under the new name."""
        schema = _reduce(TODOS, "ALTER TABLE todos RENAME TO tasks")
        assert "todos" not in schema
        tasks = schema.table("tasks")
        assert tasks is not None
        assert tasks.column_names == ["id", "title", "done"]

    def test_rename_onto_existing_conflicts(self) -> None:
        """Renaming onto an existing table is a conflict."""
        with pytest.raises(SchemaConflictError):
            _reduce(TODOS, "CREATE TABLE tasks (id INTEGER)", "ALTER TABLE todos RENAME TO tasks")

    def test_drop_table(self) -> None:
        """Dropped tables are removed."""
        assert _reduce(TODOS, "DROP TABLE todos").tables == {}

    def test_drop_missing_table(self) -> None:
        """DROP TABLE on a missing table conflicts unless IF EXISTS."""
        assert _reduce("DROP TABLE IF EXISTS ghosts").tables == {}
        with pytest.raises(SchemaConflictError):
            _reduce("DROP TABLE ghosts")

    def test_recreate_after_drop(self) -> None:
        """A dropped table may be created again."""
        schema = _reduce(TODOS, "DROP TABLE todos", "CREATE TABLE todos (id TEXT PRIMARY KEY)")
        table = schema.table("todos")
        assert table is not None
        assert table.column_names == ["id"]


class TestReduceIndexes:
    """Tests for index operations."""

    def test_index_columns_use_declared_spelling(self) -> None:
        """Index columns resolve to the spelling the table declared."""
        builder = SchemaBuilder()
        for op in parse(TODOS):
            builder.apply(op)
        builder.apply(parse("CREATE INDEX idx ON todos (TITLE)")[0])
        table = builder.table("todos")
        assert table is not None
        assert table.indexes == (IndexDefinition(name="idx", columns=("title",)),)

    def test_unnamed_index_gets_derived_name(self) -> None:
        """Indexes built without a name are named after table and columns."""
        builder = SchemaBuilder()
        for op in parse(TODOS):
            builder.apply(op)
        builder.apply(CreateIndex(table="todos", columns=("TITLE", "done")))
        table = builder.table("todos")
        assert table is not None
        assert table.indexes[0].name == "todos_title_done_idx"

    def test_index_on_missing_column_conflicts(self) -> None:
        """Index columns must exist."""
        with pytest.raises(SchemaConflictError, match="column 'nope' does not exist"):
            _reduce(TODOS, "CREATE INDEX idx ON todos (nope)")

    def test_duplicate_index(self) -> None:
        """A second index with the same name conflicts unless IF NOT EXISTS."""
        _reduce(
            TODOS,
            "CREATE INDEX idx ON todos (title)",
            "CREATE INDEX IF NOT EXISTS idx ON todos (done)",
        )
        with pytest.raises(SchemaConflictError, match="already exists"):
            _reduce(TODOS, "CREATE INDEX idx ON todos (title)", "CREATE INDEX idx ON todos (done)")

    def test_drop_index(self) -> None:
        """DROP INDEX removes the index from its table."""
        schema = _reduce(TODOS, "CREATE INDEX idx ON todos (title)", "DROP INDEX idx")
        table = schema.table("todos")
        assert table is not None
        assert table.indexes == ()

    def test_drop_missing_index(self) -> None:
        """DROP INDEX on a missing index conflicts unless IF EXISTS."""
        _reduce("DROP INDEX IF EXISTS idx")
        with pytest.raises(SchemaConflictError):
            _reduce("DROP INDEX idx")


class TestReduceOrdering:
    """Tests for order sensitivity and provenance."""

    def test_given_swapped_order_when_reduced_then_conflict(self) -> None:
        """The same operations in a different order are not equivalent."""
        # Given
        create = "CREATE TABLE todos (id INTEGER PRIMARY KEY)"
        add = "ALTER TABLE todos ADD COLUMN title TEXT"

        # When / Then
        assert _reduce(create, add).table("todos") is not None
        with pytest.raises(SchemaConflictError):
            _reduce(add, create)

    def test_case_insensitive_lookup_keeps_declared_spelling(self) -> None:
        """Later references may use any case; the declared spelling wins."""
        schema = _reduce(
            "CREATE TABLE Todos (Id INTEGER PRIMARY KEY)", "ALTER TABLE TODOS ADD COLUMN title TEXT"
        )
        assert list(schema.tables) == ["Todos"]
        table = schema.table("todos")
        assert table is not None
        assert table.column_names == ["Id", "title"]

    def test_conflict_names_origin(self) -> None:
        """Conflicts carry the file and line of the failing statement."""
        first = MigrationFile(1, "Init", "m/V1__init.sql", TODOS + ";")
        second = MigrationFile(2, "Again", "m/V2__again.sql", "\n" + TODOS + ";")
        operations = [*parse_migration(first), *parse_migration(second)]
        with pytest.raises(SchemaConflictError) as exc_info:
            reduce(operations)
        assert "V2__again.sql:2" in exc_info.value.message

    def test_operations_and_migrations_recorded(self) -> None:
        """The model keeps the operation history and every migration given."""
        first = MigrationFile(1, "Init", "m/V1__init.sql", TODOS + ";")
        seed = MigrationFile(2, "Seed", "m/V2__seed.sql", "INSERT INTO todos (title) VALUES ('a');")
        operations = [*parse_migration(first), *parse_migration(seed)]
        schema = reduce(operations, [first, seed])
        assert len(schema.operations) == 1
        assert isinstance(schema.operations[0], CreateTable)
        assert schema.migrations == (first, seed)
        assert schema.tables["todos"].created_in == first
