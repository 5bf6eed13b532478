"""sqlitebridge - generate typed TypeScript data layers from SQLite migrations."""

__version__ = "1.1.0"
