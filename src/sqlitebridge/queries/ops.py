"""Query-file collaborator: hand-written statements attached to services.

A query file is ``<queries_path>/<table>.sql``; every statement follows a
marker line naming it::

    -- :findByTitle
    SELECT * FROM todos WHERE title = :title

Statements are used verbatim. They are analyzed only for their shape
(kind, parameters, single-row result), never checked against the schema.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from sqlitebridge.core.errors import MigrationSourceError, ParseError
from sqlitebridge.core.logging import get_logger
from sqlitebridge.files.ops import FileOps

log = get_logger("queries")

_MARKER = re.compile(r"^--\s*:(?P<name>[A-Za-z_]\w*)\s*$")
_LIMIT_ONE = re.compile(r"\bLIMIT\s+1\b(?!\s*,)", re.IGNORECASE)
_SELECT_STAR = re.compile(r"^SELECT\s+(?:\w+\.)?\*\s+FROM\b", re.IGNORECASE)
_PARAM_NAME = re.compile(r"[A-Za-z_]\w*")


class QueryKind(Enum):
    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class QuerySpec:
    """One named, parameterized statement from a query file."""

    name: str
    table: str
    params: tuple[str, ...]
    sql: str
    kind: QueryKind
    bound_sql: str
    bindings: tuple[str, ...]
    single_row: bool = False
    selects_rows: bool = False


@dataclass(frozen=True, slots=True)
class QueryFile:
    table: str
    path: str
    queries: tuple[QuerySpec, ...]


def extract_named_queries(text: str, *, source: str | None = None) -> dict[str, str]:
    """Map query names to statement text, in file order.

    Raises:
        ParseError: The same name is used twice in one file.
    """
    queries: dict[str, str] = {}
    current: str | None = None
    lines: list[str] = []

    def finish() -> None:
        if current is None:
            return
        body = "\n".join(lines).strip().rstrip(";").strip()
        if body:
            queries[current] = body
        else:
            log.debug("empty_query_skipped", name=current, source=source)

    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        m = _MARKER.match(line)
        if m:
            finish()
            current = m.group("name")
            if current in queries:
                raise ParseError.at(number, line, f"duplicate query name '{current}'", source)
            lines = []
            continue
        if current is not None and line:
            lines.append(line)
    finish()
    log.debug("queries_extracted", source=source, count=len(queries))
    return queries


def bind_parameters(sql: str) -> tuple[str, tuple[str, ...]]:
    """Rewrite ``:name`` placeholders to ``?``.

    Returns the rewritten statement and the parameter name bound to each
    placeholder, in order. Bare ``?`` placeholders are named ``param1``,
    ``param2``... Text inside quotes is left alone; comments are dropped so
    placeholders inside them never bind.
    """
    out: list[str] = []
    bindings: list[str] = []
    positional = 0
    i = 0
    n = len(sql)
    while i < n:
        ch = sql[i]
        if sql.startswith("--", i):
            end = sql.find("\n", i)
            i = n if end == -1 else end
            continue
        if sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            out.append(" ")
            i = n if end == -1 else end + 2
            continue
        if ch in ("'", '"', "`"):
            end = sql.find(ch, i + 1)
            while end != -1 and end + 1 < n and sql[end + 1] == ch:
                end = sql.find(ch, end + 2)
            end = n if end == -1 else end + 1
            out.append(sql[i:end])
            i = end
            continue
        if ch == ":" and (i == 0 or sql[i - 1] != ":") and (m := _PARAM_NAME.match(sql, i + 1)):
            bindings.append(m.group(0))
            out.append("?")
            i = m.end()
            continue
        if ch == "?":
            positional += 1
            bindings.append(f"param{positional}")
            out.append("?")
            i += 1
            # ?NNN numbered placeholders bind like bare ones
            while i < n and sql[i].isdigit():
                i += 1
            continue
        out.append(ch)
        i += 1
    return "".join(out), tuple(bindings)


def _query_kind(sql: str) -> QueryKind:
    head = sql.lstrip().split(None, 1)[0].upper() if sql.strip() else ""
    if head == "WITH":
        # CTE: the main statement keyword decides
        for kind in (QueryKind.SELECT, QueryKind.INSERT, QueryKind.UPDATE, QueryKind.DELETE):
            if re.search(rf"\)\s*{kind.name}\b", sql, re.IGNORECASE):
                return kind
        return QueryKind.OTHER
    try:
        return QueryKind(head.lower())
    except ValueError:
        return QueryKind.OTHER


def analyze_query(name: str, table: str, sql: str) -> QuerySpec:
    bound_sql, bindings = bind_parameters(sql)
    params = tuple(dict.fromkeys(bindings))
    # shape comes from the comment-free text
    kind = _query_kind(bound_sql)
    return QuerySpec(
        name=name,
        table=table,
        params=params,
        sql=sql,
        kind=kind,
        bound_sql=bound_sql,
        bindings=bindings,
        single_row=kind is QueryKind.SELECT and bool(_LIMIT_ONE.search(bound_sql)),
        selects_rows=kind is QueryKind.SELECT and bool(_SELECT_STAR.match(bound_sql.strip())),
    )


def parse_query_file(text: str, table: str, path: str) -> QueryFile:
    named = extract_named_queries(text, source=Path(path).name)
    return QueryFile(
        table=table,
        path=path,
        queries=tuple(analyze_query(name, table, sql) for name, sql in named.items()),
    )


def load_query_file(file_ops: FileOps, path: Path) -> QueryFile:
    """Load one query file (single-file mode)."""
    if not file_ops.exists(path):
        raise MigrationSourceError.file_not_found(str(path))
    return parse_query_file(file_ops.read_text(path), path.stem, path.as_posix())


def load_query_files(file_ops: FileOps, directory: Path) -> list[QueryFile]:
    """Load every ``*.sql`` query file of a directory; a missing directory has none."""
    if not file_ops.is_dir(directory):
        log.debug("queries_dir_missing", directory=str(directory))
        return []
    paths = file_ops.list_files(directory, pattern="*.sql")
    return [load_query_file(file_ops, path) for path in paths]
