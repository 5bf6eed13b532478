"""Query files: named, hand-written statements for generated services."""

from sqlitebridge.queries.ops import (
    QueryFile,
    QueryKind,
    QuerySpec,
    analyze_query,
    extract_named_queries,
    load_query_file,
    load_query_files,
)

__all__ = [
    "QueryFile",
    "QueryKind",
    "QuerySpec",
    "analyze_query",
    "extract_named_queries",
    "load_query_file",
    "load_query_files",
]
