"""Shared TypeScript rendering helpers for the emitters.

Every emitter builds its output through ``CodeWriter`` so indentation and
line endings are identical across artifacts.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from contextlib import contextmanager
from posixpath import normpath, relpath

from sqlitebridge.schema.naming import to_camel_case
from sqlitebridge.schema.types import TypeDescriptor, TypeKind

INDENT = "  "

_TS_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_SQL_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
# Keywords that must be quoted when used as identifiers in generated SQL
_SQL_RESERVED = frozenset(
    {
        "ORDER", "GROUP", "SELECT", "FROM", "WHERE", "TABLE", "INDEX", "KEY", "DEFAULT",
        "CHECK", "PRIMARY", "REFERENCES", "VALUES", "TO", "AS", "BY", "IN", "IS", "NOT",
        "NULL", "ON", "OR", "AND", "UNIQUE", "LIMIT", "OFFSET", "TRANSACTION", "USER",
    }
)

_ENTITY_TYPES = {
    TypeKind.INTEGER: "number",
    TypeKind.FLOAT: "number",
    TypeKind.STRING: "string",
    TypeKind.BOOLEAN: "boolean",
    TypeKind.BYTES: "Uint8Array",
    TypeKind.OPAQUE: "unknown",
}

_ROW_TYPES = {
    **_ENTITY_TYPES,
    TypeKind.BYTES: "Uint8Array | number[]",
}


class CodeWriter:
    """Line buffer with block indentation."""

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._level = 0

    def line(self, text: str = "") -> None:
        self._lines.append(f"{INDENT * self._level}{text}" if text else "")

    def lines(self, texts: list[str]) -> None:
        for text in texts:
            self.line(text)

    def blank(self) -> None:
        if self._lines and self._lines[-1] != "":
            self._lines.append("")

    @contextmanager
    def block(self, opener: str, closer: str = "}") -> Iterator[None]:
        self.line(opener)
        self._level += 1
        try:
            yield
        finally:
            self._level -= 1
            self.line(closer)

    @contextmanager
    def indented(self) -> Iterator[None]:
        self._level += 1
        try:
            yield
        finally:
            self._level -= 1

    def render(self) -> str:
        lines = list(self._lines)
        while lines and lines[-1] == "":
            lines.pop()
        return "\n".join(lines) + "\n"


def file_header(writer: CodeWriter, subject: str, sources: list[str] | None = None) -> None:
    """Banner shared by all generated files. Contains no timestamps."""
    writer.line("/**")
    writer.line(" * Generated by sqlitebridge. Do not edit by hand.")
    writer.line(f" * {subject}")
    if sources:
        writer.line(f" * Source: {', '.join(sources)}")
    writer.line(" */")
    writer.blank()


def ts_string(value: str) -> str:
    """Single-quoted TypeScript string literal."""
    escaped = (
        value.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n").replace("\r", "\\r")
    )
    return f"'{escaped}'"


def ts_template(value: str) -> str:
    """Backtick template literal with no interpolation."""
    escaped = value.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")
    return f"`{escaped}`"


def property_name(column: str) -> str:
    return to_camel_case(column)


def property_key(name: str) -> str:
    """Object key as written in an interface or literal."""
    return name if _TS_IDENTIFIER.match(name) else ts_string(name)


def member_access(target: str, name: str) -> str:
    return f"{target}.{name}" if _TS_IDENTIFIER.match(name) else f"{target}[{ts_string(name)}]"


def sql_identifier(name: str) -> str:
    """Identifier as written into generated SQL; quoted only when needed."""
    if _SQL_IDENTIFIER.match(name) and name.upper() not in _SQL_RESERVED:
        return name
    return '"' + name.replace('"', '""') + '"'


def entity_type(desc: TypeDescriptor) -> str:
    base = _ENTITY_TYPES[desc.kind]
    return f"{base} | null" if desc.nullable else base


def row_type(desc: TypeDescriptor) -> str:
    base = _ROW_TYPES[desc.stored_kind]
    if desc.nullable:
        return f"({base}) | null" if "|" in base else f"{base} | null"
    return base


def _nullable(desc: TypeDescriptor, expr: str, converted: str) -> str:
    return f"{expr} == null ? null : {converted}" if desc.nullable else converted


def from_row_expr(desc: TypeDescriptor, expr: str) -> str:
    """Expression turning a stored value into its entity value."""
    if not desc.needs_conversion:
        return expr
    if desc.kind is TypeKind.BOOLEAN:
        return _nullable(desc, expr, f"Boolean({expr})")
    return _nullable(
        desc, expr, f"({expr} instanceof Uint8Array ? {expr} : Uint8Array.from({expr}))"
    )


def to_row_expr(desc: TypeDescriptor, expr: str) -> str:
    """Expression turning an entity value into its stored value."""
    if not desc.needs_conversion:
        return expr
    if desc.kind is TypeKind.BOOLEAN:
        return _nullable(desc, expr, f"({expr} ? 1 : 0)")
    return _nullable(desc, expr, f"Array.from({expr})")


def relative_import(from_dir: str, to_path: str) -> str:
    """ES module specifier from one generated directory to another module."""
    rel = relpath(normpath(to_path), normpath(from_dir))
    if rel.endswith(".ts"):
        rel = rel[:-3]
    return rel if rel.startswith(".") else f"./{rel}"
