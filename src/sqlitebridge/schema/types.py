"""Type mapper: SQL column types to target type descriptors.

``map_type`` never fails. Unknown type names produce an opaque descriptor
so generation can proceed; callers report them as warnings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from sqlitebridge.schema.models import ColumnDefinition, ForeignKeyRef, TableSchema


class TypeKind(Enum):
    INTEGER = "integer"
    FLOAT = "float"
    STRING = "string"
    BYTES = "bytes"
    BOOLEAN = "boolean"
    OPAQUE = "opaque"


_KNOWN_TYPES: dict[str, TypeKind] = {
    # Integer affinity
    "INTEGER": TypeKind.INTEGER,
    "INT": TypeKind.INTEGER,
    "BIGINT": TypeKind.INTEGER,
    "TINYINT": TypeKind.INTEGER,
    "SMALLINT": TypeKind.INTEGER,
    "MEDIUMINT": TypeKind.INTEGER,
    "INT2": TypeKind.INTEGER,
    "INT4": TypeKind.INTEGER,
    "INT8": TypeKind.INTEGER,
    "UNSIGNED BIG INT": TypeKind.INTEGER,
    "INT UNSIGNED": TypeKind.INTEGER,
    "INTEGER UNSIGNED": TypeKind.INTEGER,
    "BIGINT UNSIGNED": TypeKind.INTEGER,
    # Text affinity
    "TEXT": TypeKind.STRING,
    "VARCHAR": TypeKind.STRING,
    "CHAR": TypeKind.STRING,
    "CHARACTER": TypeKind.STRING,
    "VARYING CHARACTER": TypeKind.STRING,
    "NCHAR": TypeKind.STRING,
    "NATIVE CHARACTER": TypeKind.STRING,
    "NVARCHAR": TypeKind.STRING,
    "CLOB": TypeKind.STRING,
    "DATE": TypeKind.STRING,
    "DATETIME": TypeKind.STRING,
    "TIMESTAMP": TypeKind.STRING,
    "TIME": TypeKind.STRING,
    # Real / numeric affinity
    "REAL": TypeKind.FLOAT,
    "FLOAT": TypeKind.FLOAT,
    "DOUBLE": TypeKind.FLOAT,
    "DOUBLE PRECISION": TypeKind.FLOAT,
    "NUMERIC": TypeKind.FLOAT,
    "DECIMAL": TypeKind.FLOAT,
    # Blob
    "BLOB": TypeKind.BYTES,
    # Boolean, stored as 0/1
    "BOOLEAN": TypeKind.BOOLEAN,
    "BOOL": TypeKind.BOOLEAN,
}

_ARGS = re.compile(r"\([^)]*\)")


@dataclass(frozen=True, slots=True)
class TypeDescriptor:
    """Target-language view of one column."""

    kind: TypeKind
    sql_type: str
    nullable: bool = True
    reference: ForeignKeyRef | None = None
    generated: bool = False

    @property
    def is_opaque(self) -> bool:
        return self.kind is TypeKind.OPAQUE

    @property
    def stored_kind(self) -> TypeKind:
        """Kind of the on-disk value; booleans are stored as integers."""
        return TypeKind.INTEGER if self.kind is TypeKind.BOOLEAN else self.kind

    @property
    def needs_conversion(self) -> bool:
        """True when row and entity representations differ."""
        return self.kind in (TypeKind.BOOLEAN, TypeKind.BYTES)


def normalize_type_name(sql_type: str) -> str:
    """``varchar ( 255 )`` -> ``VARCHAR``; ``double  precision`` -> ``DOUBLE PRECISION``."""
    return " ".join(_ARGS.sub(" ", sql_type).upper().split())


def type_kind(sql_type: str) -> TypeKind:
    name = normalize_type_name(sql_type)
    if name in _KNOWN_TYPES:
        return _KNOWN_TYPES[name]
    first = name.split(" ", 1)[0] if name else ""
    return _KNOWN_TYPES.get(first, TypeKind.OPAQUE)


def map_type(sql_type: str, column: ColumnDefinition, *, sole_key: bool = False) -> TypeDescriptor:
    """Describe a column for code generation.

    Args:
        sql_type: Declared SQL type (may carry arguments, e.g. ``VARCHAR(40)``).
        column: Column the type belongs to; supplies nullability and references.
        sole_key: The column is the table's only primary-key column.
    """
    kind = type_kind(sql_type)
    generated = sole_key and column.primary_key and kind is TypeKind.INTEGER
    return TypeDescriptor(
        kind=kind,
        sql_type=sql_type,
        nullable=column.nullable and not column.primary_key,
        reference=column.references,
        generated=generated,
    )


def describe_column(table: TableSchema, column: ColumnDefinition) -> TypeDescriptor:
    """``map_type`` with the table context needed to spot row-id keys."""
    key = table.key_column
    return map_type(column.sql_type, column, sole_key=key is not None and key.name == column.name)
