"""Service emitter: typed data-access classes per table.

Method bodies are rendered once from the schema and the query files. The
framework selector only decides the wrapper: the class declaration, its
constructor and, for react, the hooks appended after the class.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlitebridge.config.models import Framework
from sqlitebridge.core.diagnostics import Diagnostics, OrphanQueryWarning
from sqlitebridge.core.errors import SchemaConflictError
from sqlitebridge.core.logging import get_logger
from sqlitebridge.emit.models import ModelField, ModelNames, model_fields
from sqlitebridge.emit.typescript import (
    CodeWriter,
    entity_type,
    file_header,
    property_key,
    sql_identifier,
    to_row_expr,
    ts_string,
)
from sqlitebridge.queries.ops import QueryFile, QueryKind, QuerySpec
from sqlitebridge.schema.models import SchemaModel, TableSchema, ident_key
from sqlitebridge.schema.naming import (
    service_class_name,
    service_file_stem,
    table_name_variants,
    to_camel_case,
    to_kebab_case,
    to_pascal_case,
)
from sqlitebridge.schema.parser import collapse_whitespace, split_statements

log = get_logger("emit.services")

CONNECTION_MODULE = "database-connection"

_RAW_ROW = "Record<string, unknown>"
_TS_RESERVED = frozenset(
    {
        "break", "case", "catch", "class", "const", "continue", "debugger", "default",
        "delete", "do", "else", "enum", "export", "extends", "false", "finally", "for",
        "function", "if", "import", "in", "instanceof", "let", "new", "null", "return",
        "super", "switch", "this", "throw", "true", "try", "typeof", "var", "void",
        "while", "with", "yield",
    }
)


@dataclass(frozen=True, slots=True)
class MethodSpec:
    """One service method, independent of the framework wrapper."""

    name: str
    params: tuple[tuple[str, str], ...]
    returns: str
    body: tuple[str, ...]
    doc: str
    reads: bool

    @property
    def signature(self) -> str:
        args = ", ".join(f"{name}: {type_}" for name, type_ in self.params)
        return f"async {self.name}({args}): Promise<{self.returns}>"


@dataclass
class ServiceUnit:
    """Everything needed to render one service file."""

    class_name: str
    file_stem: str
    subject: str
    sources: list[str]
    methods: list[MethodSpec]
    hook_prefix: str
    model_imports: list[str] = field(default_factory=list)
    model_module: str | None = None
    preamble: list[str] = field(default_factory=list)


# Naming ---------------------------------------------------------------------


def _param_name(raw: str) -> str:
    name = to_camel_case(raw)
    return f"{name}_" if name in _TS_RESERVED else name


def _statement_sql(sql: str, source: str | None = None) -> str:
    """Single-line statement text with comments removed."""
    return " ".join(collapse_whitespace(s.text) for s in split_statements(sql, source=source))


def _values_list(values: Sequence[str]) -> str:
    return f", [{', '.join(values)}]" if values else ""


# CRUD methods ---------------------------------------------------------------


def _read_rows(names: ModelNames, *, single: bool) -> tuple[str, ...]:
    if single:
        return (
            "const row = result.values?.[0];",
            f"return row ? {names.from_row}(row as {names.row}) : null;",
        )
    return (f"return (result.values ?? []).map((row) => {names.from_row}(row as {names.row}));",)


def _crud_methods(
    table: TableSchema, names: ModelNames, fields: list[ModelField]
) -> list[MethodSpec]:
    tbl = sql_identifier(table.name)
    methods = [
        MethodSpec(
            name="getAll",
            params=(),
            returns=f"{names.entity}[]",
            body=(
                f"const result = await this.db.query({ts_string(f'SELECT * FROM {tbl}')});",
                *_read_rows(names, single=False),
            ),
            doc=f"All rows of {table.name}.",
            reads=True,
        ),
        MethodSpec(
            name="insert",
            params=(("input", names.new),),
            returns="number | undefined",
            body=(
                f"const row = {names.changes_to_row}(input);",
                f"const columns = Object.keys(row) as (keyof {names.row})[];",
                "const statement = columns.length",
                "  ? `INSERT INTO " + tbl + " (${columns.map((column) => COLUMN_SQL[column])"
                ".join(', ')}) VALUES (${columns.map(() => '?').join(', ')})`",
                f"  : {ts_string(f'INSERT INTO {tbl} DEFAULT VALUES')};",
                "const values = columns.map((column) => row[column]);",
                "const result = await this.db.run(statement, values);",
                "return result.changes?.lastId;",
            ),
            doc=f"Insert a row into {table.name}; resolves to the row id of the new row.",
            reads=False,
        ),
    ]
    key = table.key_column
    if key is None:
        return methods

    key_field = next(f for f in fields if f.column is key)
    key_type = entity_type(key_field.desc)
    key_value = to_row_expr(key_field.desc, "id")
    where = f"WHERE {sql_identifier(key.name)} = ?"
    methods.insert(
        1,
        MethodSpec(
            name="getById",
            params=(("id", key_type),),
            returns=f"{names.entity} | null",
            body=(
                "const result = await this.db.query("
                f"{ts_string(f'SELECT * FROM {tbl} {where} LIMIT 1')}, [{key_value}]);",
                *_read_rows(names, single=True),
            ),
            doc=f"The {table.name} row with the given {key.name}, or null.",
            reads=True,
        ),
    )
    methods.append(
        MethodSpec(
            name="update",
            params=(("id", key_type), ("changes", f"Partial<{names.new}>")),
            returns="boolean",
            body=(
                f"const row = {names.changes_to_row}(changes);",
                f"const columns = Object.keys(row) as (keyof {names.row})[];",
                "if (columns.length === 0) {",
                "  return false;",
                "}",
                "const assignments = columns",
                "  .map((column) => `${COLUMN_SQL[column]} = ?`)",
                "  .join(', ');",
                "const result = await this.db.run(",
                f"  `UPDATE {tbl} SET ${{assignments}} {where}`,",
                f"  [...columns.map((column) => row[column]), {key_value}],",
                ");",
                "return (result.changes?.changes ?? 0) > 0;",
            ),
            doc=(
                f"Update the given fields of one {table.name} row; "
                "resolves to false when no row changed."
            ),
            reads=False,
        )
    )
    methods.append(
        MethodSpec(
            name="delete",
            params=(("id", key_type),),
            returns="boolean",
            body=(
                "const result = await this.db.run("
                f"{ts_string(f'DELETE FROM {tbl} {where}')}, [{key_value}]);",
                "return (result.changes?.changes ?? 0) > 0;",
            ),
            doc=f"Delete one {table.name} row; resolves to false when it did not exist.",
            reads=False,
        )
    )
    return methods


# Custom query methods -------------------------------------------------------


def _match_field(fields: list[ModelField], param: str) -> ModelField | None:
    key = ident_key(to_camel_case(param))
    for f in fields:
        if ident_key(f.prop) == key:
            return f
    return None


def _query_method(
    query: QuerySpec,
    source: str,
    names: ModelNames | None,
    fields: list[ModelField],
) -> MethodSpec:
    params: list[tuple[str, str]] = []
    values: dict[str, str] = {}
    seen: dict[str, str] = {}
    for raw in query.params:
        name = _param_name(raw)
        if name in seen:
            raise SchemaConflictError.of(
                query.table,
                f"QUERY {query.name}",
                f"parameters :{seen[name]} and :{raw} both become argument '{name}'",
                source,
            )
        seen[name] = raw
        f = _match_field(fields, raw)
        params.append((name, entity_type(f.desc) if f else "unknown"))
        values[raw] = to_row_expr(f.desc, name) if f else name
    bound = [values[raw] for raw in query.bindings]
    sql = ts_string(_statement_sql(query.bound_sql, source))

    if query.kind is QueryKind.SELECT:
        call = f"const result = await this.db.query({sql}{_values_list(bound)});"
        if names is not None and query.selects_rows:
            returns = f"{names.entity} | null" if query.single_row else f"{names.entity}[]"
            body = (call, *_read_rows(names, single=query.single_row))
        elif query.single_row:
            returns = f"{_RAW_ROW} | null"
            body = (call, f"return (result.values?.[0] as {_RAW_ROW} | undefined) ?? null;")
        else:
            returns = f"{_RAW_ROW}[]"
            body = (call, f"return (result.values ?? []) as {_RAW_ROW}[];")
        reads = True
    else:
        returns = "number"
        body = (
            f"const result = await this.db.run({sql}{_values_list(bound)});",
            "return result.changes?.changes ?? 0;",
        )
        reads = False

    doc_sql = _statement_sql(query.sql, source).replace("*/", "* /")
    return MethodSpec(
        name=query.name,
        params=tuple(params),
        returns=returns,
        body=body,
        doc=f"Query `{query.name}` from {source}: {doc_sql}",
        reads=reads,
    )


def _custom_methods(
    query_file: QueryFile | None,
    table_name: str,
    names: ModelNames | None,
    fields: list[ModelField],
    taken: Sequence[str],
) -> list[MethodSpec]:
    if query_file is None:
        return []
    source = query_file.path.rsplit("/", 1)[-1]
    methods: list[MethodSpec] = []
    for query in sorted(query_file.queries, key=lambda q: q.name):
        if query.name in taken:
            raise SchemaConflictError.of(
                table_name,
                f"QUERY {query.name}",
                f"query in {source} has the same name as a generated method",
            )
        methods.append(_query_method(query, source, names, fields))
    return methods


# Wrappers -------------------------------------------------------------------


def _class_opener(framework: Framework, class_name: str) -> list[str]:
    if framework == "angular":
        return [
            "@Injectable({ providedIn: 'root' })",
            f"export class {class_name} {{",
        ]
    return [f"export class {class_name} {{"]


def _constructor(framework: Framework) -> str:
    if framework == "angular":
        return (
            "constructor(@Inject(DATABASE_CONNECTION) private readonly db: DatabaseConnection) {}"
        )
    return "constructor(private readonly db: DatabaseConnection) {}"


def _write_method(w: CodeWriter, method: MethodSpec) -> None:
    w.line(f"/** {method.doc} */")
    with w.block(f"{method.signature} {{"):
        w.lines(list(method.body))


def _write_class(w: CodeWriter, unit: ServiceUnit, framework: Framework) -> None:
    opener = _class_opener(framework, unit.class_name)
    w.lines(opener[:-1])
    with w.block(opener[-1]):
        w.line(_constructor(framework))
        for method in unit.methods:
            w.blank()
            _write_method(w, method)
    w.blank()


def _write_hooks(w: CodeWriter, unit: ServiceUnit) -> None:
    factory = f"use{unit.class_name}"
    with w.block(f"export function {factory}(db: DatabaseConnection): {unit.class_name} {{"):
        w.line(f"return useMemo(() => new {unit.class_name}(db), [db]);")
    w.blank()
    for method in unit.methods:
        hook = f"use{unit.hook_prefix}{to_pascal_case(method.name)}"
        names = [name for name, _ in method.params]
        if method.reads:
            args = "".join(f", {name}: {type_}" for name, type_ in method.params)
            with w.block(
                f"export function {hook}(db: DatabaseConnection{args}): "
                f"QueryState<{method.returns}> {{"
            ):
                w.line(f"const service = {factory}(db);")
                deps = ", ".join(["service", *names])
                call = f"service.{method.name}({', '.join(names)})"
                w.line(f"return useQueryResult(() => {call}, [{deps}]);")
        else:
            args = ", ".join(f"{name}: {type_}" for name, type_ in method.params)
            tuple_type = f"[{args}]"
            with w.block(
                f"export function {hook}(db: DatabaseConnection): "
                f"MutationState<{tuple_type}, {method.returns}> {{"
            ):
                w.line(f"const service = {factory}(db);")
                w.line(
                    f"return useMutation(({args}) => service.{method.name}({', '.join(names)}));"
                )
        w.blank()


def _write_imports(
    w: CodeWriter, unit: ServiceUnit, framework: Framework, hooks: bool
) -> None:
    if framework == "angular":
        w.line("import { Inject, Injectable } from '@angular/core';")
        w.line(
            "import { DATABASE_CONNECTION, type DatabaseConnection } "
            f"from './{CONNECTION_MODULE}';"
        )
    elif hooks:
        w.line("import { useMemo } from 'react';")
        w.line(
            "import { type DatabaseConnection, type MutationState, type QueryState, "
            f"useMutation, useQueryResult }} from './{CONNECTION_MODULE}';"
        )
    else:
        w.line(f"import type {{ DatabaseConnection }} from './{CONNECTION_MODULE}';")
    if unit.model_module and unit.model_imports:
        w.line(f"import {{ {', '.join(unit.model_imports)} }} from '{unit.model_module}';")
    w.blank()


def render_service(unit: ServiceUnit, framework: Framework, *, generate_hooks: bool = True) -> str:
    hooks = framework == "react" and generate_hooks
    w = CodeWriter()
    file_header(w, unit.subject, unit.sources or None)
    _write_imports(w, unit, framework, hooks)
    if unit.preamble:
        w.lines(unit.preamble)
        w.blank()
    _write_class(w, unit, framework)
    if hooks:
        _write_hooks(w, unit)
    return w.render()


# Units ----------------------------------------------------------------------


def _match_query_files(
    schema: SchemaModel, query_files: Sequence[QueryFile]
) -> tuple[dict[str, QueryFile], list[QueryFile]]:
    attached: dict[str, QueryFile] = {}
    orphans: list[QueryFile] = []
    for qf in query_files:
        table = next(
            (t for v in table_name_variants(qf.table) if (t := schema.table(v)) is not None), None
        )
        if table is None:
            orphans.append(qf)
        elif table.name in attached:
            raise SchemaConflictError.of(
                table.name,
                "QUERY FILE",
                f"both {attached[table.name].path} and {qf.path} provide queries for this table",
            )
        else:
            attached[table.name] = qf
    return attached, orphans


def table_service_unit(
    table: TableSchema, query_file: QueryFile | None, *, models_import: str
) -> ServiceUnit:
    names = ModelNames.for_table(table.name)
    fields = model_fields(table)
    crud = _crud_methods(table, names, fields)
    custom = _custom_methods(query_file, table.name, names, fields, [m.name for m in crud])

    model_module = f"{models_import.rstrip('/')}/{names.file_stem}"
    imports = [f"type {names.entity}", f"type {names.new}", f"type {names.row}"]
    imports += [names.changes_to_row, names.from_row]
    column_map = ", ".join(
        f"{property_key(f.column.name)}: {ts_string(sql_identifier(f.column.name))}" for f in fields
    )
    sources = [table.created_in.name] if table.created_in else []
    if query_file is not None:
        sources.append(query_file.path.rsplit("/", 1)[-1])
    return ServiceUnit(
        class_name=service_class_name(table.name),
        file_stem=service_file_stem(table.name),
        subject=f"Data access for table {table.name}.",
        sources=sources,
        methods=crud + custom,
        hook_prefix=to_pascal_case(table.name),
        model_imports=imports,
        model_module=model_module,
        preamble=[f"const COLUMN_SQL: Record<keyof {names.row}, string> = {{ {column_map} }};"],
    )


def orphan_query_unit(query_file: QueryFile) -> ServiceUnit:
    """Service for a query file whose table is not in the schema; methods return raw rows."""
    base = to_pascal_case(query_file.table)
    return ServiceUnit(
        class_name=f"{base}Queries",
        file_stem=f"{to_kebab_case(query_file.table)}.queries",
        subject=f"Queries from {query_file.path.rsplit('/', 1)[-1]} (no matching table).",
        sources=[query_file.path.rsplit("/", 1)[-1]],
        methods=_custom_methods(query_file, query_file.table, None, [], ()),
        hook_prefix=base,
    )


def emit_services(
    schema: SchemaModel,
    query_files: Sequence[QueryFile],
    framework: Framework,
    *,
    generate_hooks: bool = True,
    models_import: str = "../models",
    diagnostics: Diagnostics | None = None,
) -> dict[str, str]:
    """Render one service per live table plus one per orphan query file.

    Returns:
        File stem (without ``.ts``) to generated text, in table order then
        orphan order.

    Raises:
        SchemaConflictError: Two query files target one table, or a query
            name collides with a generated method.
    """
    attached, orphans = _match_query_files(schema, query_files)
    units = [
        table_service_unit(table, attached.get(table.name), models_import=models_import)
        for table in schema.tables.values()
    ]
    for qf in orphans:
        if diagnostics is not None:
            diagnostics.add(
                OrphanQueryWarning(
                    message=f"Query file targets unknown table '{qf.table}'",
                    source=qf.path,
                    query_file=qf.path,
                    table=qf.table,
                )
            )
        units.append(orphan_query_unit(qf))

    rendered: dict[str, str] = {}
    for unit in units:
        if unit.file_stem in rendered:
            raise SchemaConflictError.of(
                unit.class_name, "GENERATE SERVICE", f"file {unit.file_stem}.ts is generated twice"
            )
        rendered[unit.file_stem] = render_service(unit, framework, generate_hooks=generate_hooks)
    log.debug("services_rendered", framework=framework, count=len(rendered))
    return rendered


def emit_database_connection(framework: Framework, *, generate_hooks: bool = True) -> str:
    """The connection contract every generated service depends on."""
    w = CodeWriter()
    file_header(w, "Database connection contract for generated services.")
    hooks = framework == "react" and generate_hooks
    if framework == "angular":
        w.line("import { InjectionToken } from '@angular/core';")
        w.blank()
    elif hooks:
        w.line("import { useCallback, useEffect, useState } from 'react';")
        w.blank()

    with w.block("export interface QueryResult {"):
        w.line("values?: any[];")
    w.blank()
    with w.block("export interface RunResult {"):
        w.line("changes?: { changes?: number; lastId?: number };")
    w.blank()
    w.line("/** Satisfied by a Capacitor SQLite SQLiteDBConnection. */")
    with w.block("export interface DatabaseConnection {"):
        w.line("query(statement: string, values?: unknown[]): Promise<QueryResult>;")
        w.line("run(statement: string, values?: unknown[]): Promise<RunResult>;")
    w.blank()

    if framework == "angular":
        w.line(
            "export const DATABASE_CONNECTION = "
            "new InjectionToken<DatabaseConnection>('DATABASE_CONNECTION');"
        )
    elif hooks:
        w.lines(_REACT_HELPERS)
    return w.render()


_REACT_HELPERS = [
    "export interface QueryState<T> {",
    "  data: T | undefined;",
    "  loading: boolean;",
    "  error: unknown;",
    "  refetch: () => Promise<void>;",
    "}",
    "",
    "export interface MutationState<A extends unknown[], R> {",
    "  mutate: (...args: A) => Promise<R>;",
    "  loading: boolean;",
    "  error: unknown;",
    "}",
    "",
    "/** Run a read when its dependencies change and expose its state. */",
    "export function useQueryResult<T>(run: () => Promise<T>, deps: unknown[]): QueryState<T> {",
    "  const [data, setData] = useState<T | undefined>(undefined);",
    "  const [loading, setLoading] = useState(true);",
    "  const [error, setError] = useState<unknown>(null);",
    "  const refetch = useCallback(async () => {",
    "    setLoading(true);",
    "    setError(null);",
    "    try {",
    "      setData(await run());",
    "    } catch (e) {",
    "      setError(e);",
    "    } finally {",
    "      setLoading(false);",
    "    }",
    "    // eslint-disable-next-line react-hooks/exhaustive-deps",
    "  }, deps);",
    "  useEffect(() => {",
    "    void refetch();",
    "  }, [refetch]);",
    "  return { data, loading, error, refetch };",
    "}",
    "",
    "/** Wrap a write so callers can track its progress. */",
    "export function useMutation<A extends unknown[], R>(",
    "  run: (...args: A) => Promise<R>,",
    "): MutationState<A, R> {",
    "  const [loading, setLoading] = useState(false);",
    "  const [error, setError] = useState<unknown>(null);",
    "  const mutate = async (...args: A): Promise<R> => {",
    "    setLoading(true);",
    "    setError(null);",
    "    try {",
    "      return await run(...args);",
    "    } catch (e) {",
    "      setError(e);",
    "      throw e;",
    "    } finally {",
    "      setLoading(false);",
    "    }",
    "  };",
    "  return { mutate, loading, error };",
    "}",
]
