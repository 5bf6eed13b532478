"""Schema reducer: folds ordered DDL operations into one ``SchemaModel``.

Operations are applied strictly in the order given; the caller is
responsible for sequencing migrations. Each operation is validated against
the state left by the ones before it and rejected with
``SchemaConflictError`` when it does not fit.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import assert_never

from sqlitebridge.core.errors import SchemaConflictError
from sqlitebridge.core.logging import get_logger
from sqlitebridge.schema.models import (
    AddColumn,
    AlterColumn,
    ColumnDefinition,
    ConstraintKind,
    CreateIndex,
    CreateTable,
    DdlOperation,
    DropColumn,
    DropIndex,
    DropTable,
    IndexDefinition,
    MigrationFile,
    RenameColumn,
    RenameTable,
    SchemaModel,
    TableSchema,
    ident_key,
)

log = get_logger("reducer")


@dataclass
class _TableState:
    """Mutable table shape used only while folding."""

    name: str
    columns: list[ColumnDefinition]
    indexes: list[IndexDefinition] = field(default_factory=list)
    primary_key: list[str] = field(default_factory=list)
    created_in: MigrationFile | None = None

    def find(self, column: str) -> int:
        key = ident_key(column)
        for pos, col in enumerate(self.columns):
            if ident_key(col.name) == key:
                return pos
        return -1

    def freeze(self) -> TableSchema:
        return TableSchema(
            name=self.name,
            columns=tuple(self.columns),
            indexes=tuple(self.indexes),
            primary_key=tuple(self.primary_key),
            created_in=self.created_in,
        )


class SchemaBuilder:
    """Incremental fold over DDL operations.

    ``apply`` validates and applies one operation; ``table`` and ``build``
    expose the state reached so far. The Dexie emitter replays history with
    its own builder to read the table shape after every step.
    """

    def __init__(self) -> None:
        self._tables: dict[str, _TableState] = {}
        self._operations: list[DdlOperation] = []

    # Lookup -------------------------------------------------------------

    def _get(self, name: str) -> _TableState | None:
        return self._tables.get(ident_key(name))

    def _require(self, name: str, op: DdlOperation) -> _TableState:
        state = self._get(name)
        if state is None:
            raise _conflict(op, name, "table does not exist")
        return state

    def table(self, name: str) -> TableSchema | None:
        state = self._get(name)
        return state.freeze() if state else None

    def _index_owner(self, index_name: str) -> tuple[_TableState, int] | None:
        key = ident_key(index_name)
        for state in self._tables.values():
            for pos, index in enumerate(state.indexes):
                if ident_key(index.name) == key:
                    return state, pos
        return None

    # Fold ---------------------------------------------------------------

    def apply(self, op: DdlOperation) -> None:
        if isinstance(op, CreateTable):
            self._create_table(op)
        elif isinstance(op, AddColumn):
            self._add_column(op)
        elif isinstance(op, DropColumn):
            self._drop_column(op)
        elif isinstance(op, AlterColumn):
            self._alter_column(op)
        elif isinstance(op, RenameColumn):
            self._rename_column(op)
        elif isinstance(op, RenameTable):
            self._rename_table(op)
        elif isinstance(op, CreateIndex):
            self._create_index(op)
        elif isinstance(op, DropIndex):
            self._drop_index(op)
        elif isinstance(op, DropTable):
            self._drop_table(op)
        else:
            assert_never(op)
        self._operations.append(op)

    def _create_table(self, op: CreateTable) -> None:
        if self._get(op.name) is not None:
            raise _conflict(op, op.name, "table already exists")

        state = _TableState(name=op.name, columns=[], created_in=op.source)
        for column in op.columns:
            if state.find(column.name) >= 0:
                raise _conflict(op, op.name, f"column '{column.name}' declared twice")
            state.columns.append(column)

        declared_pk = [c.name for c in op.columns if c.primary_key]
        table_pks = [c for c in op.constraints if c.kind is ConstraintKind.PRIMARY_KEY]
        if len(table_pks) > 1 or (table_pks and declared_pk) or len(declared_pk) > 1:
            raise _conflict(op, op.name, "more than one primary key")
        if table_pks:
            for name in table_pks[0].columns:
                pos = state.find(name)
                if pos < 0:
                    raise _conflict(op, op.name, f"primary key column '{name}' is not declared")
                col = state.columns[pos]
                state.columns[pos] = replace(col, primary_key=True, nullable=False)
                state.primary_key.append(col.name)
        else:
            state.primary_key = declared_pk

        for constraint in op.constraints:
            if constraint.kind is ConstraintKind.FOREIGN_KEY:
                for name in constraint.columns:
                    pos = state.find(name)
                    if pos < 0:
                        raise _conflict(
                            op, op.name, f"foreign key column '{name}' is not declared"
                        )
                    state.columns[pos] = replace(
                        state.columns[pos], references=constraint.reference_for(name)
                    )
            elif constraint.kind is ConstraintKind.UNIQUE:
                columns = self._resolve_columns(op, state, constraint.columns)
                if len(columns) == 1:
                    pos = state.find(columns[0])
                    state.columns[pos] = replace(state.columns[pos], unique=True)
                else:
                    state.indexes.append(
                        IndexDefinition(
                            name=constraint.name or f"{op.name}_{'_'.join(columns)}_unique",
                            columns=columns,
                            unique=True,
                        )
                    )

        self._tables[ident_key(op.name)] = state

    def _add_column(self, op: AddColumn) -> None:
        state = self._require(op.table, op)
        if state.find(op.column.name) >= 0:
            raise _conflict(op, op.table, f"column '{op.column.name}' already exists")
        if op.column.primary_key:
            raise _conflict(op, op.table, "cannot add a primary key column")
        state.columns.append(op.column)

    def _drop_column(self, op: DropColumn) -> None:
        state = self._require(op.table, op)
        pos = state.find(op.column_name)
        if pos < 0:
            raise _conflict(op, op.table, f"column '{op.column_name}' does not exist")
        if len(state.columns) == 1:
            raise _conflict(op, op.table, "cannot drop the only column")
        dropped = state.columns[pos]
        if dropped.primary_key:
            raise _conflict(op, op.table, f"cannot drop primary key column '{dropped.name}'")
        key = ident_key(dropped.name)
        if any(key in (ident_key(c) for c in index.columns) for index in state.indexes):
            raise _conflict(op, op.table, f"column '{dropped.name}' is used by an index")
        del state.columns[pos]

    def _alter_column(self, op: AlterColumn) -> None:
        state = self._require(op.table, op)
        pos = state.find(op.column_name)
        if pos < 0:
            raise _conflict(op, op.table, f"column '{op.column_name}' does not exist")
        col = state.columns[pos]
        patch = op.new_definition
        if patch.nullable and col.primary_key:
            raise _conflict(op, op.table, f"primary key column '{col.name}' cannot be nullable")
        state.columns[pos] = replace(
            col,
            sql_type=patch.sql_type if patch.sql_type is not None else col.sql_type,
            nullable=patch.nullable if patch.nullable is not None else col.nullable,
            default=None if patch.drop_default else (patch.default or col.default),
        )

    def _rename_column(self, op: RenameColumn) -> None:
        state = self._require(op.table, op)
        pos = state.find(op.column_name)
        if pos < 0:
            raise _conflict(op, op.table, f"column '{op.column_name}' does not exist")
        if ident_key(op.column_name) != ident_key(op.new_name) and state.find(op.new_name) >= 0:
            raise _conflict(op, op.table, f"column '{op.new_name}' already exists")
        old = state.columns[pos].name
        state.columns[pos] = replace(state.columns[pos], name=op.new_name)

        def rename(names: Iterable[str]) -> list[str]:
            return [op.new_name if ident_key(n) == ident_key(old) else n for n in names]

        state.primary_key = rename(state.primary_key)
        state.indexes = [
            replace(index, columns=tuple(rename(index.columns))) for index in state.indexes
        ]

    def _rename_table(self, op: RenameTable) -> None:
        state = self._require(op.name, op)
        if ident_key(op.name) != ident_key(op.new_name) and self._get(op.new_name) is not None:
            raise _conflict(op, op.name, f"table '{op.new_name}' already exists")
        del self._tables[ident_key(op.name)]
        state.name = op.new_name
        self._tables[ident_key(op.new_name)] = state

    def _create_index(self, op: CreateIndex) -> None:
        state = self._require(op.table, op)
        columns = self._resolve_columns(op, state, op.columns)
        name = op.name or f"{state.name}_{'_'.join(columns)}_idx"
        if self._index_owner(name) is not None:
            if op.if_not_exists:
                return
            raise _conflict(op, op.table, f"index '{name}' already exists")
        state.indexes.append(IndexDefinition(name=name, columns=columns, unique=op.unique))

    def _drop_index(self, op: DropIndex) -> None:
        owner = self._index_owner(op.name)
        if owner is None:
            if op.if_exists:
                return
            raise _conflict(op, op.name, f"index '{op.name}' does not exist")
        state, pos = owner
        del state.indexes[pos]

    def _drop_table(self, op: DropTable) -> None:
        if self._get(op.name) is None:
            if op.if_exists:
                return
            raise _conflict(op, op.name, "table does not exist")
        del self._tables[ident_key(op.name)]

    @staticmethod
    def _resolve_columns(
        op: DdlOperation, state: _TableState, names: Iterable[str]
    ) -> tuple[str, ...]:
        """Map index column names onto declared spelling; expressions pass through."""
        resolved: list[str] = []
        for name in names:
            if "(" in name or " " in name:
                resolved.append(name)
                continue
            pos = state.find(name)
            if pos < 0:
                raise _conflict(op, state.name, f"column '{name}' does not exist")
            resolved.append(state.columns[pos].name)
        return tuple(resolved)

    def build(self) -> SchemaModel:
        migrations: list[MigrationFile] = []
        for op in self._operations:
            if op.source is not None and op.source not in migrations:
                migrations.append(op.source)
        return SchemaModel(
            tables={state.name: state.freeze() for state in self._tables.values()},
            operations=tuple(self._operations),
            migrations=tuple(migrations),
        )


def _table_of(op: DdlOperation) -> str:
    if isinstance(op, (CreateTable, RenameTable, DropTable, DropIndex)):
        return op.name
    return op.table


def _conflict(op: DdlOperation, table: str, reason: str) -> SchemaConflictError:
    return SchemaConflictError.of(table or _table_of(op), op.label, reason, op.origin)


def reduce(
    operations: Iterable[DdlOperation],
    migrations: Iterable[MigrationFile] = (),
) -> SchemaModel:
    """Fold ordered operations into the cumulative schema.

    Args:
        operations: Operations in migration-sequence order.
        migrations: Migrations that produced them, including ones with no DDL,
                    kept on the model for emitters that replay whole files.

    Raises:
        SchemaConflictError: An operation does not fit the state before it.
    """
    builder = SchemaBuilder()
    for op in operations:
        builder.apply(op)
    model = builder.build()
    all_migrations = tuple(migrations)
    if all_migrations:
        model = replace(model, migrations=all_migrations)
    log.debug("schema_reduced", tables=len(model.tables), operations=len(model.operations))
    return model
