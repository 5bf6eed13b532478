"""Schema derivation: parse migrations, fold them, map column types."""

from sqlitebridge.schema.migrations import discover_migrations, load_migration
from sqlitebridge.schema.models import (
    AddColumn,
    AlterColumn,
    ColumnDefinition,
    CreateIndex,
    CreateTable,
    DdlOperation,
    DropColumn,
    DropIndex,
    DropTable,
    MigrationFile,
    RenameColumn,
    RenameTable,
    SchemaModel,
    TableSchema,
)
from sqlitebridge.schema.parser import parse, parse_migration
from sqlitebridge.schema.reducer import SchemaBuilder, reduce
from sqlitebridge.schema.types import TypeDescriptor, TypeKind, describe_column, map_type

__all__ = [
    "AddColumn",
    "AlterColumn",
    "ColumnDefinition",
    "CreateIndex",
    "CreateTable",
    "DdlOperation",
    "DropColumn",
    "DropIndex",
    "DropTable",
    "MigrationFile",
    "RenameColumn",
    "RenameTable",
    "SchemaBuilder",
    "SchemaModel",
    "TableSchema",
    "TypeDescriptor",
    "TypeKind",
    "describe_column",
    "discover_migrations",
    "load_migration",
    "map_type",
    "parse",
    "parse_migration",
    "reduce",
]
