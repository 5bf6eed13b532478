"""Code emitters: pure functions from the schema model to TypeScript text."""

from sqlitebridge.emit.dexie import emit_dexie_schema, store_definition
from sqlitebridge.emit.migrations import emit_migration_runner
from sqlitebridge.emit.models import emit_model_index, emit_models
from sqlitebridge.emit.services import emit_database_connection, emit_services

__all__ = [
    "emit_database_connection",
    "emit_dexie_schema",
    "emit_migration_runner",
    "emit_model_index",
    "emit_models",
    "emit_services",
    "store_definition",
]
