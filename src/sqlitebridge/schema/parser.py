"""DDL parser: SQL migration text to ordered ``DdlOperation`` values.

Only the DDL subset that shapes tables is understood. Other statements
(seed ``INSERT``s, triggers, views, pragmas) are skipped and reported as
``SkippedStatementWarning``; statements that look like supported DDL but
cannot be read raise ``ParseError``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from sqlitebridge.core.diagnostics import Diagnostics, SkippedStatementWarning
from sqlitebridge.core.errors import ParseError
from sqlitebridge.core.logging import get_logger
from sqlitebridge.schema.models import (
    AddColumn,
    AlterColumn,
    ColumnDefinition,
    ColumnPatch,
    ConstraintKind,
    CreateIndex,
    CreateTable,
    DdlOperation,
    DropColumn,
    DropIndex,
    DropTable,
    ForeignKeyRef,
    MigrationFile,
    RenameColumn,
    RenameTable,
    TableConstraint,
)

log = get_logger("parser")

_QUOTE_CLOSE = {"'": "'", '"': '"', "`": "`", "[": "]"}

_IDENT_PART = r'(?:"(?:[^"]|"")*"|`(?:[^`]|``)*`|\[[^\]]*\]|[\w$]+)'
_IDENT = rf"{_IDENT_PART}(?:\s*\.\s*{_IDENT_PART})?"
_IDENT_PART_RE = re.compile(_IDENT_PART)
_WORD = re.compile(r"[A-Za-z_][\w$]*")

_FLAGS = re.IGNORECASE | re.DOTALL

_CREATE_TABLE_HEAD = re.compile(r"^CREATE\s+(?:(?:TEMP|TEMPORARY)\s+)?TABLE\b", _FLAGS)
_CREATE_TABLE = re.compile(
    rf"^CREATE\s+(?:(?:TEMP|TEMPORARY)\s+)?TABLE\s+(?P<ine>IF\s+NOT\s+EXISTS\s+)?"
    rf"(?P<name>{_IDENT})\s*(?P<rest>.*)$",
    _FLAGS,
)
_ALTER_TABLE_HEAD = re.compile(r"^ALTER\s+TABLE\b", _FLAGS)
_ALTER_TABLE = re.compile(rf"^ALTER\s+TABLE\s+(?P<name>{_IDENT})\s+(?P<action>.+)$", _FLAGS)
_ADD_COLUMN = re.compile(r"^ADD\s+(?:COLUMN\s+)?(?P<definition>.+)$", _FLAGS)
_DROP_COLUMN = re.compile(rf"^DROP\s+(?:COLUMN\s+)?(?P<column>{_IDENT})$", _FLAGS)
_RENAME_TABLE = re.compile(rf"^RENAME\s+TO\s+(?P<new>{_IDENT})$", _FLAGS)
_RENAME_COLUMN = re.compile(
    rf"^RENAME\s+(?:COLUMN\s+)?(?P<old>{_IDENT})\s+TO\s+(?P<new>{_IDENT})$", _FLAGS
)
_ALTER_COLUMN = re.compile(
    rf"^ALTER\s+(?:COLUMN\s+)?(?P<column>{_IDENT})\s+(?P<change>.+)$", _FLAGS
)
_SET_TYPE = re.compile(r"^(?:SET\s+DATA\s+)?TYPE\s+(?P<type>.+)$", _FLAGS)
_SET_NOT_NULL = re.compile(r"^SET\s+NOT\s+NULL$", _FLAGS)
_DROP_NOT_NULL = re.compile(r"^DROP\s+NOT\s+NULL$", _FLAGS)
_SET_DEFAULT = re.compile(r"^SET\s+DEFAULT\s+(?P<expr>.+)$", _FLAGS)
_DROP_DEFAULT = re.compile(r"^DROP\s+DEFAULT$", _FLAGS)
_CREATE_INDEX_HEAD = re.compile(r"^CREATE\s+(?:UNIQUE\s+)?INDEX\b", _FLAGS)
_CREATE_INDEX = re.compile(
    rf"^CREATE\s+(?P<unique>UNIQUE\s+)?INDEX\s+(?P<ine>IF\s+NOT\s+EXISTS\s+)?"
    rf"(?P<name>{_IDENT})\s+ON\s+(?P<table>{_IDENT})\s*(?P<rest>.*)$",
    _FLAGS,
)
_DROP_HEAD = re.compile(r"^DROP\s+(?:TABLE|INDEX)\b", _FLAGS)
_DROP_TABLE = re.compile(rf"^DROP\s+TABLE\s+(?P<ie>IF\s+EXISTS\s+)?(?P<name>{_IDENT})$", _FLAGS)
_DROP_INDEX = re.compile(rf"^DROP\s+INDEX\s+(?P<ie>IF\s+EXISTS\s+)?(?P<name>{_IDENT})$", _FLAGS)
_TRIGGER_HEAD = re.compile(r"^CREATE\s+(?:(?:TEMP|TEMPORARY)\s+)?TRIGGER\b", _FLAGS)
_LEADING_WORDS = re.compile(r"^\s*([A-Za-z]+)(?:\s+(?:(?:TEMP|TEMPORARY|UNIQUE)\s+)?([A-Za-z]+))?")

# Words that end the type name of a column definition
_COLUMN_CONSTRAINTS = frozenset(
    {
        "CONSTRAINT",
        "PRIMARY",
        "NOT",
        "NULL",
        "UNIQUE",
        "CHECK",
        "DEFAULT",
        "COLLATE",
        "REFERENCES",
        "GENERATED",
        "AS",
        "AUTOINCREMENT",
        "AUTO_INCREMENT",
        "ON",
    }
)
_REFERENTIAL_ACTIONS = {"CASCADE", "RESTRICT", "SET", "NO"}


class _SyntaxIssue(Exception):
    """Raised by low-level helpers; converted to ParseError with location."""


@dataclass(frozen=True, slots=True)
class Statement:
    """One top-level SQL statement, comments removed."""

    text: str
    line: int


# Lexical helpers ------------------------------------------------------------


def _skip_quoted(text: str, start: int) -> int:
    """Index just past the literal starting at ``start``, or -1 if unterminated."""
    closer = _QUOTE_CLOSE[text[start]]
    i = start + 1
    n = len(text)
    while i < n:
        if text[i] == closer:
            # Doubled quote is an escaped quote
            if closer != "]" and i + 1 < n and text[i + 1] == closer:
                i += 2
                continue
            return i + 1
        i += 1
    return -1


def _matching_paren(text: str, start: int) -> int:
    """Index just past the ``)`` closing the ``(`` at ``start``."""
    depth = 0
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in _QUOTE_CLOSE:
            end = _skip_quoted(text, i)
            if end == -1:
                raise _SyntaxIssue("unterminated quoted literal")
            i = end
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    raise _SyntaxIssue("unbalanced parentheses")


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split on ``sep`` outside parentheses and quoted literals."""
    parts: list[str] = []
    buf: list[str] = []
    depth = 0
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in _QUOTE_CLOSE:
            end = _skip_quoted(text, i)
            if end == -1:
                raise _SyntaxIssue("unterminated quoted literal")
            buf.append(text[i:end])
            i = end
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise _SyntaxIssue("unbalanced parentheses")
        elif ch == sep and depth == 0:
            parts.append("".join(buf).strip())
            buf = []
            i += 1
            continue
        buf.append(ch)
        i += 1
    if depth != 0:
        raise _SyntaxIssue("unbalanced parentheses")
    tail = "".join(buf).strip()
    if tail or parts:
        parts.append(tail)
    return parts


def _tokenize(text: str) -> list[str]:
    """Split a clause into words, quoted literals and ``(...)`` groups."""
    tokens: list[str] = []
    current: list[str] = []

    def flush() -> None:
        if current:
            tokens.append("".join(current))
            current.clear()

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch.isspace():
            flush()
            i += 1
        elif ch in _QUOTE_CLOSE:
            end = _skip_quoted(text, i)
            if end == -1:
                raise _SyntaxIssue("unterminated quoted literal")
            current.append(text[i:end])
            i = end
        elif ch == "(":
            flush()
            end = _matching_paren(text, i)
            tokens.append(text[i:end])
            i = end
        elif ch == ")":
            raise _SyntaxIssue("unbalanced parentheses")
        else:
            current.append(ch)
            i += 1
    flush()
    return tokens


def collapse_whitespace(sql: str) -> str:
    """Collapse whitespace runs outside quoted literals to single spaces."""
    out: list[str] = []
    i = 0
    n = len(sql)
    pending_space = False
    while i < n:
        ch = sql[i]
        if ch.isspace():
            pending_space = bool(out)
            i += 1
            continue
        if pending_space:
            out.append(" ")
            pending_space = False
        if ch in _QUOTE_CLOSE:
            end = _skip_quoted(sql, i)
            end = n if end == -1 else end
            out.append(sql[i:end])
            i = end
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def unquote_identifier(raw: str) -> str:
    """Strip identifier quoting and any schema qualifier (``main."Users"`` -> ``Users``)."""
    parts = _IDENT_PART_RE.findall(raw.strip())
    if not parts:
        return raw.strip()
    name = parts[-1]
    if name.startswith('"') and name.endswith('"'):
        return name[1:-1].replace('""', '"')
    if name.startswith("`") and name.endswith("`"):
        return name[1:-1].replace("``", "`")
    if name.startswith("[") and name.endswith("]"):
        return name[1:-1]
    return name


def _group_items(group: str) -> list[str]:
    """Items of a ``(a, b)`` group token."""
    if not group.startswith("(") or not group.endswith(")"):
        raise _SyntaxIssue(f"expected a parenthesized list, found '{group}'")
    return [item for item in split_top_level(group[1:-1]) if item]


def _column_list(group: str) -> tuple[str, ...]:
    """Column names of a ``(a ASC, "b" COLLATE NOCASE)`` group."""
    names: list[str] = []
    for item in _group_items(group):
        tokens = _tokenize(item)
        if not tokens:
            raise _SyntaxIssue("empty column list entry")
        names.append(unquote_identifier(tokens[0]))
    return tuple(names)


def _follows_word(text: str, i: int) -> bool:
    return i > 0 and (text[i - 1].isalnum() or text[i - 1] in "_$")


def _excerpt(text: str, limit: int = 60) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[: limit - 3] + "..."


# Statement splitting --------------------------------------------------------


def split_statements(sql: str, *, source: str | None = None) -> list[Statement]:
    """Split SQL text into top-level statements.

    A ``;`` inside a quoted literal, a parenthesized block or the
    ``BEGIN ... END`` body of a trigger does not end a statement. Comments
    are dropped. Each statement records the line it starts on.
    """
    statements: list[Statement] = []
    buf: list[str] = []
    line = 1
    start_line: int | None = None
    depth = 0
    block_depth = 0
    i = 0
    n = len(sql)

    def flush() -> None:
        nonlocal start_line
        text = "".join(buf).strip()
        if text:
            statements.append(Statement(text=text, line=start_line or line))
        buf.clear()
        start_line = None

    while i < n:
        ch = sql[i]
        if sql.startswith("--", i):
            end = sql.find("\n", i)
            i = n if end == -1 else end
            continue
        if sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            if end == -1:
                raise ParseError.at(line, _excerpt(sql[i:]), "unterminated block comment", source)
            line += sql.count("\n", i, end)
            buf.append(" ")
            i = end + 2
            continue
        if ch in _QUOTE_CLOSE:
            end = _skip_quoted(sql, i)
            if end == -1:
                raise ParseError.at(
                    line, _excerpt(sql[i:]), "unterminated quoted literal", source
                )
            if start_line is None:
                start_line = line
            line += sql.count("\n", i, end)
            buf.append(sql[i:end])
            i = end
            continue
        if ch == "\n":
            line += 1
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise ParseError.at(
                    start_line or line, _excerpt("".join(buf) + ch), "unbalanced ')'", source
                )
        elif ch == ";" and depth == 0 and block_depth == 0:
            flush()
            i += 1
            continue
        elif (ch.isalpha() or ch == "_") and not _follows_word(sql, i):
            match = _WORD.match(sql, i)
            assert match is not None
            word = match.group(0)
            upper = word.upper()
            if (
                depth == 0
                and upper in ("BEGIN", "CASE", "END")
                and _TRIGGER_HEAD.match("".join(buf).lstrip())
            ):
                block_depth = max(0, block_depth - 1) if upper == "END" else block_depth + 1
            if start_line is None:
                start_line = line
            buf.append(word)
            i = match.end()
            continue
        if start_line is None and not ch.isspace():
            start_line = line
        buf.append(ch)
        i += 1

    if depth > 0:
        raise ParseError.at(
            start_line or line, _excerpt("".join(buf)), "unbalanced '(' at end of input", source
        )
    flush()
    return statements


# Column and constraint definitions ------------------------------------------


def _parse_reference(tokens: list[str], i: int) -> tuple[ForeignKeyRef, int]:
    """Parse ``REFERENCES t[(c)] [actions]`` starting after the keyword."""
    if i >= len(tokens) or tokens[i].startswith("("):
        raise _SyntaxIssue("REFERENCES without a table name")
    table = unquote_identifier(tokens[i])
    i += 1
    column: str | None = None
    if i < len(tokens) and tokens[i].startswith("("):
        columns = _column_list(tokens[i])
        column = columns[0] if columns else None
        i += 1
    return ForeignKeyRef(table, column), _skip_reference_clauses(tokens, i)


def _skip_reference_clauses(tokens: list[str], i: int) -> int:
    while i < len(tokens):
        word = tokens[i].upper()
        nxt = tokens[i + 1].upper() if i + 1 < len(tokens) else ""
        if word == "ON" and nxt in ("DELETE", "UPDATE"):
            action = tokens[i + 2].upper() if i + 2 < len(tokens) else ""
            if action not in _REFERENTIAL_ACTIONS:
                raise _SyntaxIssue(f"missing action after ON {nxt}")
            # SET NULL, SET DEFAULT and NO ACTION take two words
            i += 4 if action in ("SET", "NO") else 3
        elif word == "MATCH":
            i += 2
        elif word == "DEFERRABLE":
            i += 1
        elif word == "NOT" and nxt == "DEFERRABLE":
            i += 2
        elif word == "INITIALLY":
            i += 2
        else:
            break
    return i


def _join_type(parts: list[str]) -> str:
    words: list[str] = []
    for part in parts:
        if part.startswith("(") and words:
            words[-1] += collapse_whitespace(part)
        else:
            words.append(part)
    return " ".join(words)


def parse_column_definition(text: str) -> ColumnDefinition:
    """Parse ``name [type] [constraints...]``."""
    tokens = _tokenize(text)
    if not tokens or tokens[0].startswith("("):
        raise _SyntaxIssue("column definition without a name")
    name = unquote_identifier(tokens[0])

    i = 1
    type_parts: list[str] = []
    while i < len(tokens) and tokens[i].upper() not in _COLUMN_CONSTRAINTS:
        type_parts.append(tokens[i])
        i += 1

    nullable = True
    default: str | None = None
    primary_key = False
    autoincrement = False
    unique = False
    references: ForeignKeyRef | None = None

    while i < len(tokens):
        word = tokens[i].upper()
        nxt = tokens[i + 1].upper() if i + 1 < len(tokens) else ""
        if word == "CONSTRAINT":
            i += 2
        elif word == "PRIMARY":
            if nxt != "KEY":
                raise _SyntaxIssue("PRIMARY without KEY")
            primary_key = True
            nullable = False
            i += 2
        elif word in ("ASC", "DESC", "STORED", "VIRTUAL"):
            i += 1
        elif word in ("AUTOINCREMENT", "AUTO_INCREMENT"):
            autoincrement = True
            i += 1
        elif word == "NOT":
            if nxt != "NULL":
                raise _SyntaxIssue("NOT without NULL")
            nullable = False
            i += 2
        elif word == "NULL":
            i += 1
        elif word == "UNIQUE":
            unique = True
            i += 1
        elif word == "DEFAULT":
            if i + 1 >= len(tokens):
                raise _SyntaxIssue("DEFAULT without a value")
            default = collapse_whitespace(tokens[i + 1])
            i += 2
        elif word == "CHECK":
            if not nxt.startswith("("):
                raise _SyntaxIssue("CHECK without a condition")
            i += 2
        elif word == "COLLATE":
            i += 2
        elif word == "REFERENCES":
            references, i = _parse_reference(tokens, i + 1)
        elif word == "ON" and nxt == "CONFLICT":
            i += 3
        elif word == "GENERATED":
            # GENERATED ALWAYS AS (expr)
            i += 2 if nxt == "ALWAYS" else 1
        elif word == "AS":
            i += 2
        else:
            log.debug("column_token_ignored", column=name, token=tokens[i])
            i += 1

    return ColumnDefinition(
        name=name,
        sql_type=_join_type(type_parts),
        nullable=nullable,
        default=default,
        primary_key=primary_key,
        autoincrement=autoincrement,
        unique=unique,
        references=references,
    )


def _is_table_constraint(tokens: list[str]) -> bool:
    head = tokens[0].upper()
    nxt = tokens[1] if len(tokens) > 1 else ""
    if head == "CONSTRAINT":
        return True
    if head in ("PRIMARY", "FOREIGN"):
        return nxt.upper() == "KEY"
    if head in ("UNIQUE", "CHECK"):
        return nxt.startswith("(")
    return False


def _parse_table_constraint(tokens: list[str]) -> TableConstraint:
    name: str | None = None
    i = 0
    if tokens[0].upper() == "CONSTRAINT":
        if len(tokens) < 3:
            raise _SyntaxIssue("incomplete CONSTRAINT clause")
        name = unquote_identifier(tokens[1])
        i = 2
    kind = tokens[i].upper()
    rest = tokens[i + 1 :]
    if kind == "PRIMARY" and len(rest) >= 2 and rest[0].upper() == "KEY":
        return TableConstraint(ConstraintKind.PRIMARY_KEY, _column_list(rest[1]), name=name)
    if kind == "UNIQUE" and rest:
        return TableConstraint(ConstraintKind.UNIQUE, _column_list(rest[0]), name=name)
    if kind == "CHECK" and rest:
        return TableConstraint(ConstraintKind.CHECK, name=name)
    if kind == "FOREIGN" and len(rest) >= 4 and rest[0].upper() == "KEY":
        if rest[2].upper() != "REFERENCES":
            raise _SyntaxIssue("FOREIGN KEY without REFERENCES")
        columns = _column_list(rest[1])
        table = unquote_identifier(rest[3])
        referenced: tuple[str, ...] = ()
        if len(rest) > 4 and rest[4].startswith("("):
            referenced = _column_list(rest[4])
        return TableConstraint(
            ConstraintKind.FOREIGN_KEY,
            columns,
            referenced_table=table,
            referenced_columns=referenced,
            name=name,
        )
    raise _SyntaxIssue(f"unsupported table constraint '{' '.join(tokens[i:i + 2])}'")


def _parse_column_patch(column: str, change: str) -> ColumnPatch:
    if m := _SET_TYPE.match(change):
        return ColumnPatch(sql_type=_join_type(_tokenize(m.group("type"))))
    if _SET_NOT_NULL.match(change):
        return ColumnPatch(nullable=False)
    if _DROP_NOT_NULL.match(change):
        return ColumnPatch(nullable=True)
    if m := _SET_DEFAULT.match(change):
        return ColumnPatch(default=collapse_whitespace(m.group("expr")))
    if _DROP_DEFAULT.match(change):
        return ColumnPatch(drop_default=True)
    # Anything else is a complete replacement definition
    definition = parse_column_definition(f'"{column}" {change}')
    return ColumnPatch(
        sql_type=definition.sql_type,
        nullable=definition.nullable,
        default=definition.default,
        drop_default=definition.default is None,
    )


# Statement classification ---------------------------------------------------


def _parse_create_table(stmt: Statement) -> CreateTable:
    m = _CREATE_TABLE.match(stmt.text)
    if not m:
        raise _SyntaxIssue("malformed CREATE TABLE")
    rest = m.group("rest")
    if re.match(r"^AS\b", rest, re.IGNORECASE):
        raise _SyntaxIssue("CREATE TABLE ... AS SELECT has no declared columns")
    if not rest.startswith("("):
        raise _SyntaxIssue("expected a column list after the table name")
    end = _matching_paren(rest, 0)
    items = split_top_level(rest[1 : end - 1])
    if not any(items):
        raise _SyntaxIssue("table has no columns")

    columns: list[ColumnDefinition] = []
    constraints: list[TableConstraint] = []
    for item in items:
        if not item:
            raise _SyntaxIssue("empty entry in column list")
        tokens = _tokenize(item)
        if _is_table_constraint(tokens):
            constraints.append(_parse_table_constraint(tokens))
        else:
            columns.append(parse_column_definition(item))
    if not columns:
        raise _SyntaxIssue("table has no columns")

    return CreateTable(
        name=unquote_identifier(m.group("name")),
        columns=tuple(columns),
        constraints=tuple(constraints),
        if_not_exists=bool(m.group("ine")),
    )


def _parse_alter_table(stmt: Statement) -> DdlOperation:
    m = _ALTER_TABLE.match(stmt.text)
    if not m:
        raise _SyntaxIssue("malformed ALTER TABLE")
    table = unquote_identifier(m.group("name"))
    action = m.group("action").strip()

    if am := _ADD_COLUMN.match(action):
        definition = am.group("definition")
        tokens = _tokenize(definition)
        if tokens and _is_table_constraint(tokens):
            raise _SyntaxIssue("adding table constraints is not supported")
        return AddColumn(table=table, column=parse_column_definition(definition))
    if am := _DROP_COLUMN.match(action):
        return DropColumn(table=table, column_name=unquote_identifier(am.group("column")))
    if am := _RENAME_TABLE.match(action):
        return RenameTable(name=table, new_name=unquote_identifier(am.group("new")))
    if am := _RENAME_COLUMN.match(action):
        return RenameColumn(
            table=table,
            column_name=unquote_identifier(am.group("old")),
            new_name=unquote_identifier(am.group("new")),
        )
    if am := _ALTER_COLUMN.match(action):
        column = unquote_identifier(am.group("column"))
        return AlterColumn(
            table=table,
            column_name=column,
            new_definition=_parse_column_patch(column, am.group("change").strip()),
        )
    raise _SyntaxIssue(f"unsupported ALTER TABLE action '{_excerpt(action, 30)}'")


def _parse_create_index(stmt: Statement) -> CreateIndex:
    m = _CREATE_INDEX.match(stmt.text)
    if not m:
        raise _SyntaxIssue("malformed CREATE INDEX")
    rest = m.group("rest")
    if not rest.startswith("("):
        raise _SyntaxIssue("expected an indexed column list")
    end = _matching_paren(rest, 0)
    trailing = rest[end:].strip()
    if trailing and not re.match(r"^WHERE\b", trailing, re.IGNORECASE):
        raise _SyntaxIssue(f"unexpected text after index columns '{_excerpt(trailing, 30)}'")

    columns: list[str] = []
    for item in _group_items(rest[:end]):
        tokens = _tokenize(item)
        # Expression entries are kept verbatim
        if tokens and tokens[0].startswith("("):
            columns.append(collapse_whitespace(item))
        elif len(tokens) > 1 and tokens[1].startswith("("):
            columns.append(collapse_whitespace(item))
        else:
            columns.append(unquote_identifier(tokens[0]))
    if not columns:
        raise _SyntaxIssue("index has no columns")

    return CreateIndex(
        table=unquote_identifier(m.group("table")),
        columns=tuple(columns),
        unique=bool(m.group("unique")),
        name=unquote_identifier(m.group("name")),
        if_not_exists=bool(m.group("ine")),
    )


def _parse_drop(stmt: Statement) -> DdlOperation:
    if m := _DROP_TABLE.match(stmt.text):
        return DropTable(name=unquote_identifier(m.group("name")), if_exists=bool(m.group("ie")))
    if m := _DROP_INDEX.match(stmt.text):
        return DropIndex(name=unquote_identifier(m.group("name")), if_exists=bool(m.group("ie")))
    raise _SyntaxIssue("malformed DROP statement")


def _classify(stmt: Statement) -> DdlOperation | None:
    if _CREATE_TABLE_HEAD.match(stmt.text):
        return _parse_create_table(stmt)
    if _ALTER_TABLE_HEAD.match(stmt.text):
        return _parse_alter_table(stmt)
    if _CREATE_INDEX_HEAD.match(stmt.text):
        return _parse_create_index(stmt)
    if _DROP_HEAD.match(stmt.text):
        return _parse_drop(stmt)
    return None


def _leading_keyword(text: str) -> str:
    m = _LEADING_WORDS.match(text)
    if not m:
        return text.split(None, 1)[0].upper() if text.strip() else ""
    first, second = m.group(1).upper(), (m.group(2) or "").upper()
    return f"{first} {second}" if first in ("CREATE", "DROP", "ALTER") and second else first


def parse(
    sql: str,
    provenance: MigrationFile | None = None,
    *,
    diagnostics: Diagnostics | None = None,
) -> list[DdlOperation]:
    """Parse one migration's SQL into its ordered DDL operations.

    Args:
        sql: Full text of the migration.
        provenance: Migration the text came from; attached to every operation.
        diagnostics: Collector for skipped statements.

    Raises:
        ParseError: A DDL statement could not be read.
    """
    source = provenance.name if provenance else None
    operations: list[DdlOperation] = []
    for stmt in split_statements(sql, source=source):
        try:
            op = _classify(stmt)
        except _SyntaxIssue as e:
            raise ParseError.at(stmt.line, _excerpt(stmt.text), str(e), source) from e
        if op is None:
            keyword = _leading_keyword(stmt.text)
            if diagnostics is not None:
                diagnostics.add(
                    SkippedStatementWarning(
                        message=f"Skipped non-DDL statement: {_excerpt(stmt.text, 50)}",
                        source=f"{source}:{stmt.line}" if source else f"line {stmt.line}",
                        line=stmt.line,
                        keyword=keyword,
                    )
                )
            log.debug("statement_skipped", keyword=keyword, line=stmt.line, source=source)
            continue
        operations.append(_with_provenance(op, provenance, stmt))
    log.debug("migration_parsed", source=source, operations=len(operations))
    return operations


def _with_provenance(
    op: DdlOperation, provenance: MigrationFile | None, stmt: Statement
) -> DdlOperation:
    return replace(op, source=provenance, line=stmt.line, statement=collapse_whitespace(stmt.text))


def parse_migration(
    migration: MigrationFile, *, diagnostics: Diagnostics | None = None
) -> list[DdlOperation]:
    return parse(migration.sql, migration, diagnostics=diagnostics)
