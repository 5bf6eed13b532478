"""Structural schema data model.

Migration files are parsed into ``DdlOperation`` values, which the reducer
folds into a ``SchemaModel``. Identifiers keep their original spelling but
are compared case-insensitively through ``ident_key``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePath


def ident_key(name: str) -> str:
    """Lookup key for a SQL identifier."""
    return name.casefold()


@dataclass(frozen=True, slots=True)
class MigrationFile:
    """One ordered migration input."""

    version: int
    description: str
    path: str
    sql: str

    @property
    def name(self) -> str:
        return PurePath(self.path).name


@dataclass(frozen=True, slots=True)
class ForeignKeyRef:
    """Target of a REFERENCES clause."""

    table: str
    column: str | None = None

    def __str__(self) -> str:
        return f"{self.table}({self.column})" if self.column else self.table


@dataclass(frozen=True, slots=True)
class ColumnDefinition:
    name: str
    sql_type: str
    nullable: bool = True
    default: str | None = None
    primary_key: bool = False
    autoincrement: bool = False
    unique: bool = False
    references: ForeignKeyRef | None = None


class ConstraintKind(Enum):
    PRIMARY_KEY = "primary_key"
    UNIQUE = "unique"
    FOREIGN_KEY = "foreign_key"
    CHECK = "check"


@dataclass(frozen=True, slots=True)
class TableConstraint:
    """Table-level constraint from a CREATE TABLE column list."""

    kind: ConstraintKind
    columns: tuple[str, ...] = ()
    referenced_table: str | None = None
    referenced_columns: tuple[str, ...] = ()
    name: str | None = None

    def reference_for(self, column: str) -> ForeignKeyRef | None:
        """Foreign-key target of one local column of this constraint."""
        if self.referenced_table is None:
            return None
        keys = [ident_key(c) for c in self.columns]
        try:
            pos = keys.index(ident_key(column))
        except ValueError:
            return None
        target = self.referenced_columns[pos] if pos < len(self.referenced_columns) else None
        return ForeignKeyRef(self.referenced_table, target)


@dataclass(frozen=True, slots=True)
class IndexDefinition:
    name: str
    columns: tuple[str, ...]
    unique: bool = False


@dataclass(frozen=True, slots=True)
class ColumnPatch:
    """New definition for an existing column; None leaves a property as is."""

    sql_type: str | None = None
    nullable: bool | None = None
    default: str | None = None
    drop_default: bool = False


# Operations -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _Operation:
    source: MigrationFile | None = field(default=None, kw_only=True, compare=False)
    line: int = field(default=0, kw_only=True, compare=False)
    statement: str = field(default="", kw_only=True, compare=False)

    @property
    def origin(self) -> str | None:
        """Human-readable location of the statement, for error messages."""
        if self.source is None:
            return None
        return f"{self.source.name}:{self.line}" if self.line else self.source.name


@dataclass(frozen=True, slots=True)
class CreateTable(_Operation):
    name: str
    columns: tuple[ColumnDefinition, ...]
    constraints: tuple[TableConstraint, ...] = ()
    if_not_exists: bool = False

    label = "CREATE TABLE"


@dataclass(frozen=True, slots=True)
class AddColumn(_Operation):
    table: str
    column: ColumnDefinition

    label = "ADD COLUMN"


@dataclass(frozen=True, slots=True)
class DropColumn(_Operation):
    table: str
    column_name: str

    label = "DROP COLUMN"


@dataclass(frozen=True, slots=True)
class AlterColumn(_Operation):
    table: str
    column_name: str
    new_definition: ColumnPatch

    label = "ALTER COLUMN"


@dataclass(frozen=True, slots=True)
class RenameColumn(_Operation):
    table: str
    column_name: str
    new_name: str

    label = "RENAME COLUMN"


@dataclass(frozen=True, slots=True)
class RenameTable(_Operation):
    name: str
    new_name: str

    label = "RENAME TABLE"


@dataclass(frozen=True, slots=True)
class CreateIndex(_Operation):
    table: str
    columns: tuple[str, ...]
    unique: bool = False
    name: str | None = None
    if_not_exists: bool = False

    label = "CREATE INDEX"


@dataclass(frozen=True, slots=True)
class DropIndex(_Operation):
    name: str
    if_exists: bool = False

    label = "DROP INDEX"


@dataclass(frozen=True, slots=True)
class DropTable(_Operation):
    name: str
    if_exists: bool = False

    label = "DROP TABLE"


DdlOperation = (
    CreateTable
    | AddColumn
    | DropColumn
    | AlterColumn
    | RenameColumn
    | RenameTable
    | CreateIndex
    | DropIndex
    | DropTable
)


# Reduced schema -------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TableSchema:
    """Current shape of one table."""

    name: str
    columns: tuple[ColumnDefinition, ...]
    indexes: tuple[IndexDefinition, ...] = ()
    primary_key: tuple[str, ...] = ()
    created_in: MigrationFile | None = field(default=None, compare=False)

    def column(self, name: str) -> ColumnDefinition | None:
        key = ident_key(name)
        for col in self.columns:
            if ident_key(col.name) == key:
                return col
        return None

    def has_column(self, name: str) -> bool:
        return self.column(name) is not None

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def key_column(self) -> ColumnDefinition | None:
        """The primary-key column when the key is a single column."""
        if len(self.primary_key) != 1:
            return None
        return self.column(self.primary_key[0])


@dataclass(frozen=True, slots=True)
class SchemaModel:
    """Cumulative schema plus the ordered operation history that built it."""

    tables: dict[str, TableSchema]
    operations: tuple[DdlOperation, ...] = ()
    migrations: tuple[MigrationFile, ...] = ()

    def table(self, name: str) -> TableSchema | None:
        key = ident_key(name)
        for table_name, table in self.tables.items():
            if ident_key(table_name) == key:
                return table
        return None

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.table(name) is not None
