"""Dexie emitter: an IndexedDB mirror of the SQL schema history.

The operation log is replayed through a fresh ``SchemaBuilder``; every
operation that changes the schema becomes one ``this.version(n)`` stage
listing the stores it touched.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlitebridge.core.errors import SchemaConflictError
from sqlitebridge.core.logging import get_logger
from sqlitebridge.emit.typescript import (
    CodeWriter,
    file_header,
    member_access,
    property_key,
    row_type,
    ts_string,
)
from sqlitebridge.schema.models import (
    AddColumn,
    AlterColumn,
    CreateIndex,
    CreateTable,
    DdlOperation,
    DropColumn,
    DropIndex,
    DropTable,
    RenameColumn,
    RenameTable,
    SchemaModel,
    TableSchema,
    ident_key,
)
from sqlitebridge.schema.naming import interface_name, model_file_stem
from sqlitebridge.schema.reducer import SchemaBuilder
from sqlitebridge.schema.types import describe_column

log = get_logger("emit.dexie")


@dataclass
class DexieStage:
    """One Dexie version: store definitions plus optional data upgrade lines."""

    version: int
    comment: str
    stores: dict[str, str | None] = field(default_factory=dict)
    upgrade: list[str] = field(default_factory=list)


def _key_path(columns: Sequence[str]) -> str:
    return columns[0] if len(columns) == 1 else f"[{'+'.join(columns)}]"


def _primary_path(table: TableSchema) -> str:
    key = table.key_column
    if key is not None:
        return f"++{key.name}" if describe_column(table, key).generated else key.name
    if table.primary_key:
        return _key_path(table.primary_key)
    return "++"


def store_definition(table: TableSchema) -> str:
    """Dexie store string: primary key first, then indexed key paths."""
    entries: list[str] = [_primary_path(table)]
    seen = {ident_key(name) for name in table.primary_key}

    def add(path: str, unique: bool = False) -> None:
        k = ident_key(path)
        if k in seen:
            return
        seen.add(k)
        entries.append(f"&{path}" if unique else path)

    for col in table.columns:
        if col.unique:
            add(col.name, unique=True)
    for col in table.columns:
        if col.references is not None or col.name.lower().endswith("_id"):
            add(col.name)
    for index in table.indexes:
        if any("(" in c or " " in c for c in index.columns):
            continue
        add(_key_path(index.columns), unique=index.unique)
    return ", ".join(entries)


def _touched_tables(op: DdlOperation) -> list[str]:
    if isinstance(op, (CreateTable, DropTable)):
        return [op.name]
    if isinstance(op, RenameTable):
        return [op.name, op.new_name]
    if isinstance(op, (AddColumn, DropColumn, AlterColumn, RenameColumn, CreateIndex)):
        return [op.table]
    return []


def _stage_comment(op: DdlOperation) -> str:
    named = (CreateTable, DropTable, RenameTable, DropIndex)
    target = op.name if isinstance(op, named) else op.table
    origin = op.origin or "migration"
    return f"{origin}: {op.label} {target}"


def _column_upgrade(table: str, body: list[str]) -> list[str]:
    return [
        f"return tx.table({ts_string(table)}).toCollection().modify((row) => {{",
        *(f"  {line}" for line in body),
        "});",
    ]


def _upgrade_lines(op: DdlOperation, before: SchemaModel) -> list[str]:
    """Data migration run by Dexie when the stage is applied."""
    if isinstance(op, (DropColumn, RenameColumn)):
        state = before.table(op.table)
        table = state.name if state else op.table
        column = state.column(op.column_name) if state else None
        old = member_access("row", column.name if column else op.column_name)
        if isinstance(op, DropColumn):
            return _column_upgrade(table, [f"delete {old};"])
        return _column_upgrade(
            table, [f"{member_access('row', op.new_name)} = {old};", f"delete {old};"]
        )
    if isinstance(op, RenameTable):
        state = before.table(op.name)
        old_name = state.name if state else op.name
        return [
            f"const rows = await tx.table({ts_string(old_name)}).toArray();",
            f"await tx.table({ts_string(op.new_name)}).bulkAdd(rows);",
        ]
    return []


def _stage_stores(
    op: DdlOperation, before: SchemaModel, after: SchemaModel
) -> dict[str, str | None]:
    """Stores named by the operation plus any whose definition changed."""
    stores: dict[str, str | None] = {}
    for name in _touched_tables(op):
        new = after.table(name)
        if new is not None:
            stores[new.name] = store_definition(new)
        elif (old := before.table(name)) is not None:
            stores[old.name] = None
    for name, table in after.tables.items():
        old = before.table(name)
        if old is None or store_definition(old) != store_definition(table):
            stores.setdefault(name, store_definition(table))
    for name in before.tables:
        if after.table(name) is None:
            stores.setdefault(name, None)
    return stores


def _check_primary_keys(op: DdlOperation, before: SchemaModel, after: SchemaModel) -> None:
    """Dexie cannot change the primary key of a store that already exists."""
    for name, table in after.tables.items():
        old = before.table(name)
        if old is None:
            continue
        old_path, new_path = _primary_path(old), _primary_path(table)
        if old_path != new_path:
            raise SchemaConflictError.of(
                table.name,
                op.label,
                f"Dexie store primary key would change from '{old_path}' to '{new_path}'",
                op.origin,
            )


def build_stages(
    operations: Sequence[DdlOperation],
) -> tuple[list[DexieStage], dict[str, TableSchema]]:
    """Replay operations and collect one stage per schema change.

    Returns:
        The stages in order and the live tables after the last operation.

    Raises:
        SchemaConflictError: An operation changes the primary key of a live
            store, which Dexie cannot upgrade in place.
    """
    builder = SchemaBuilder()
    stages: list[DexieStage] = []
    before = builder.build()
    for op in operations:
        builder.apply(op)
        after = builder.build()
        if after.tables == before.tables:
            log.debug("dexie_noop_skipped", op=op.label, origin=op.origin)
            continue
        _check_primary_keys(op, before, after)
        stages.append(
            DexieStage(
                version=len(stages) + 1,
                comment=_stage_comment(op),
                stores=_stage_stores(op, before, after),
                upgrade=_upgrade_lines(op, before),
            )
        )
        before = after
    return stages, before.tables


def _table_key_type(table: TableSchema) -> str:
    if not table.primary_key:
        return "number"
    columns = [c for name in table.primary_key if (c := table.column(name)) is not None]
    types = [row_type(describe_column(table, c)).removesuffix(" | null") for c in columns]
    return types[0] if len(types) == 1 else f"[{', '.join(types)}]"


def emit_dexie_schema(
    operations: Sequence[DdlOperation],
    *,
    database_name: str = "AppDatabase",
    models_import: str = "./models",
) -> str:
    """Render the Dexie database class.

    Args:
        operations: The full operation log in migration order.
        database_name: Class name and default IndexedDB database name.
        models_import: Module specifier of the models directory, relative to
            the generated file.

    Raises:
        SchemaConflictError: The log does not replay cleanly or changes a
            store's primary key.
    """
    stages, tables = build_stages(operations)

    w = CodeWriter()
    sources = sorted({op.source.name for op in operations if op.source is not None})
    file_header(w, "Dexie schema mirroring the SQL migrations.", sources or None)
    w.line("import Dexie, { type Table } from 'dexie';")
    base = models_import.rstrip("/")
    for table in tables.values():
        row = f"{interface_name(table.name)}Row"
        w.line(f"import type {{ {row} }} from '{base}/{model_file_stem(table.name)}';")
    w.blank()

    with w.block(f"export class {database_name} extends Dexie {{"):
        for table in tables.values():
            row = f"{interface_name(table.name)}Row"
            w.line(f"{property_key(table.name)}!: Table<{row}, {_table_key_type(table)}>;")
        if tables:
            w.blank()
        with w.block(f"constructor(name = {ts_string(database_name)}) {{"):
            w.line("super(name);")
            if not stages:
                w.line("this.version(1).stores({});")
            for stage in stages:
                w.blank()
                w.line(f"// {stage.comment}")
                w.line(f"this.version({stage.version})")
                with w.indented():
                    with w.block(".stores({", "})" if stage.upgrade else "});"):
                        for name, definition in stage.stores.items():
                            value = "null" if definition is None else ts_string(definition)
                            w.line(f"{property_key(name)}: {value},")
                    if stage.upgrade:
                        with w.block(".upgrade(async (tx) => {", "});"):
                            w.lines(stage.upgrade)
    log.debug("dexie_rendered", stages=len(stages), tables=len(tables))
    return w.render()
