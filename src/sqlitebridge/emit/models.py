"""Model emitter: one TypeScript module per live table.

Each module declares the stored row shape, the entity shape, the input
shape for inserts, and converters between rows and entities.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlitebridge.core.errors import SchemaConflictError
from sqlitebridge.emit.typescript import (
    CodeWriter,
    entity_type,
    file_header,
    from_row_expr,
    member_access,
    property_key,
    property_name,
    row_type,
    ts_string,
    to_row_expr,
)
from sqlitebridge.schema.models import ColumnDefinition, SchemaModel, TableSchema
from sqlitebridge.schema.naming import (
    interface_name,
    model_file_stem,
    split_words,
    to_camel_case,
)
from sqlitebridge.schema.types import TypeDescriptor, describe_column


@dataclass(frozen=True, slots=True)
class ModelField:
    """A live column as seen by generated code."""

    column: ColumnDefinition
    prop: str
    desc: TypeDescriptor

    @property
    def optional_on_insert(self) -> bool:
        return self.desc.nullable or self.column.default is not None


@dataclass(frozen=True, slots=True)
class ModelNames:
    """Generated identifiers for one table."""

    entity: str
    row: str
    new: str
    from_row: str
    to_row: str
    changes_to_row: str
    table_const: str
    columns_const: str
    file_stem: str

    @classmethod
    def for_table(cls, table: str) -> ModelNames:
        entity = interface_name(table)
        fn = to_camel_case(entity)
        const = "_".join(w.upper() for w in split_words(entity))
        return cls(
            entity=entity,
            row=f"{entity}Row",
            new=f"New{entity}",
            from_row=f"{fn}FromRow",
            to_row=f"{fn}ToRow",
            changes_to_row=f"{fn}ChangesToRow",
            table_const=f"{const}_TABLE",
            columns_const=f"{const}_COLUMNS",
            file_stem=model_file_stem(table),
        )


def model_fields(table: TableSchema) -> list[ModelField]:
    """Live columns in stored order with their property names and types.

    Raises:
        SchemaConflictError: Two columns map to the same property name.
    """
    fields: list[ModelField] = []
    seen: dict[str, str] = {}
    for column in table.columns:
        prop = property_name(column.name)
        if prop in seen:
            raise SchemaConflictError.of(
                table.name,
                "GENERATE MODEL",
                f"columns '{seen[prop]}' and '{column.name}' both map to property '{prop}'",
            )
        seen[prop] = column.name
        fields.append(ModelField(column=column, prop=prop, desc=describe_column(table, column)))
    return fields


def _field_doc(field: ModelField) -> str | None:
    notes: list[str] = []
    col = field.column
    if col.primary_key:
        notes.append("Primary key" + (", generated on insert" if field.desc.generated else ""))
    if col.autoincrement:
        notes.append("Auto increment")
    if col.unique:
        notes.append("Unique")
    if col.default is not None:
        notes.append(f"Default: {col.default}")
    if col.references is not None:
        notes.append(f"References {col.references} (@see {interface_name(col.references.table)})")
    if field.desc.is_opaque:
        notes.append(f"SQL type {col.sql_type or '(none)'} has no TypeScript equivalent")
    return "; ".join(notes) if notes else None


def _insert_key(field: ModelField) -> str:
    return property_key(field.prop) + ("?" if field.optional_on_insert else "")


def _write_interface(
    w: CodeWriter, name: str, doc: str, members: list[tuple[str, str, str | None]]
) -> None:
    w.line(f"/** {doc} */")
    with w.block(f"export interface {name} {{"):
        for key, type_, note in members:
            if note:
                w.line(f"/** {note} */")
            w.line(f"{key}: {type_};")
    w.blank()


def emit_model(table: TableSchema) -> str:
    """Render the model module of one table."""
    names = ModelNames.for_table(table.name)
    fields = model_fields(table)
    sources = [table.created_in.name] if table.created_in else None

    w = CodeWriter()
    file_header(w, f"Model for table {table.name}.", sources)

    _write_interface(
        w,
        names.row,
        f"Row of the {table.name} table as stored.",
        [(property_key(f.column.name), row_type(f.desc), None) for f in fields],
    )
    _write_interface(
        w,
        names.entity,
        f"Entity for the {table.name} table.",
        [(property_key(f.prop), entity_type(f.desc), _field_doc(f)) for f in fields],
    )
    _write_interface(
        w,
        names.new,
        f"Fields accepted when inserting into {table.name}.",
        [
            (_insert_key(f), entity_type(f.desc), None) for f in fields if not f.desc.generated
        ],
    )

    w.line(f"export const {names.table_const} = {ts_string(table.name)};")
    column_list = ", ".join(ts_string(f.column.name) for f in fields)
    w.line(f"export const {names.columns_const} = [{column_list}] as const;")
    w.blank()

    with w.block(f"export function {names.from_row}(row: {names.row}): {names.entity} {{"):
        with w.block("return {", "};"):
            for f in fields:
                value = from_row_expr(f.desc, member_access("row", f.column.name))
                w.line(f"{property_key(f.prop)}: {value},")
    w.blank()

    with w.block(f"export function {names.to_row}(entity: {names.entity}): {names.row} {{"):
        with w.block("return {", "};"):
            for f in fields:
                value = to_row_expr(f.desc, member_access("entity", f.prop))
                w.line(f"{property_key(f.column.name)}: {value},")
    w.blank()

    w.line("/** Stored values for the fields present in an insert or update. */")
    with w.block(
        f"export function {names.changes_to_row}("
        f"changes: Partial<{names.new}>): Partial<{names.row}> {{"
    ):
        w.line(f"const row: Partial<{names.row}> = {{}};")
        for f in fields:
            if f.desc.generated:
                continue
            source = member_access("changes", f.prop)
            target = member_access("row", f.column.name)
            with w.block(f"if ({source} !== undefined) {{"):
                w.line(f"{target} = {to_row_expr(f.desc, source)};")
        w.line("return row;")
    return w.render()


def emit_models(schema: SchemaModel) -> dict[str, str]:
    """Render every live table; keys are table names in creation order.

    Raises:
        SchemaConflictError: Two tables map to the same model name.
    """
    owners: dict[str, str] = {}
    for table in schema.tables.values():
        stem = model_file_stem(table.name)
        if stem in owners:
            raise SchemaConflictError.of(
                table.name,
                "GENERATE MODEL",
                f"maps to the same model file '{stem}.ts' as table '{owners[stem]}'",
            )
        owners[stem] = table.name
    return {name: emit_model(table) for name, table in schema.tables.items()}


def emit_model_index(schema: SchemaModel) -> str:
    """Barrel module re-exporting every model."""
    w = CodeWriter()
    file_header(w, "Model index.")
    for stem in sorted(model_file_stem(name) for name in schema.tables):
        w.line(f"export * from './{stem}';")
    return w.render()
