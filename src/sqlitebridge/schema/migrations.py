"""Migration discovery and sequencing.

The sequence key of a migration comes from its file name; this module is
the only place that ordering is derived. Everything downstream trusts the
order of the list returned by ``discover_migrations``.
"""

from __future__ import annotations

import re
from pathlib import Path

from sqlitebridge.config.models import DEFAULT_MIGRATION_PATTERN
from sqlitebridge.core.errors import MigrationSourceError
from sqlitebridge.core.logging import get_logger
from sqlitebridge.files.ops import FileOps
from sqlitebridge.schema.models import MigrationFile
from sqlitebridge.schema.naming import split_words

log = get_logger("migrations")

_LEADING_DIGITS = re.compile(r"^\D{0,2}?(\d+)")


def format_description(raw: str) -> str:
    """``add_emailAddress`` -> ``Add Email Address``."""
    return " ".join(w[:1].upper() + w[1:].lower() for w in split_words(raw))


def sequence_key(file_name: str, pattern: re.Pattern[str]) -> tuple[int, str] | None:
    """Version and description for a migration file name.

    Returns None when the name does not match the pattern.

    Raises:
        MigrationSourceError: The name matches but carries no numeric version.
    """
    match = pattern.match(file_name)
    if match is None:
        return None
    groups = match.groupdict()
    version_text = groups.get("version")
    if version_text is None:
        digits = _LEADING_DIGITS.match(file_name)
        version_text = digits.group(1) if digits else None
    if not version_text or not version_text.isdigit():
        raise MigrationSourceError.unparsable_version(file_name)

    description = groups.get("description")
    if description is None:
        description = re.sub(r"^\D{0,2}?\d+_*", "", Path(file_name).stem)
    return int(version_text), format_description(description) or f"Migration {int(version_text)}"


def load_migration(
    file_ops: FileOps,
    path: Path,
    *,
    pattern: str = DEFAULT_MIGRATION_PATTERN,
) -> MigrationFile:
    """Load a single migration file (single-file mode)."""
    if not file_ops.exists(path):
        raise MigrationSourceError.file_not_found(str(path))
    key = sequence_key(path.name, re.compile(pattern))
    if key is None:
        # Single-file mode accepts any name; it sequences alone as version 1
        key = (1, format_description(path.stem))
    version, description = key
    return MigrationFile(
        version=version, description=description, path=path.as_posix(), sql=file_ops.read_text(path)
    )


def discover_migrations(
    file_ops: FileOps,
    directory: Path,
    *,
    pattern: str = DEFAULT_MIGRATION_PATTERN,
) -> list[MigrationFile]:
    """List, sequence and read the migrations of a directory.

    Raises:
        MigrationSourceError: Missing directory, duplicate or unparsable versions.
    """
    if not file_ops.is_dir(directory):
        raise MigrationSourceError.directory_not_found(str(directory))

    compiled = re.compile(pattern)
    keyed: dict[int, tuple[Path, str]] = {}
    for path in file_ops.list_files(directory):
        key = sequence_key(path.name, compiled)
        if key is None:
            log.debug("migration_file_ignored", path=str(path))
            continue
        version, description = key
        if version in keyed:
            raise MigrationSourceError.duplicate_version(version, keyed[version][0].name, path.name)
        keyed[version] = (path, description)

    migrations = [
        MigrationFile(
            version=version,
            description=description,
            path=path.as_posix(),
            sql=file_ops.read_text(path),
        )
        for version, (path, description) in sorted(keyed.items())
    ]
    log.debug("migrations_discovered", directory=str(directory), count=len(migrations))
    return migrations
