"""File-system collaborator used by a generation run.

One capability set (existence, read, write, list) with two implementations:
``LocalFileOps`` writes to disk, ``DryRunFileOps`` reads from disk and keeps
writes in memory. ``create_file_ops`` picks one when a run starts; the
instance is passed to ``GenerateOps`` rather than reached through a global.
"""

from __future__ import annotations

import fnmatch
from abc import ABC, abstractmethod
from pathlib import Path

from sqlitebridge.core.logging import get_logger

log = get_logger("files")


class FileOps(ABC):
    """Synchronous file access. Reads return the full text; nothing is held open."""

    @abstractmethod
    def exists(self, path: Path) -> bool: ...

    @abstractmethod
    def is_dir(self, path: Path) -> bool: ...

    @abstractmethod
    def read_text(self, path: Path) -> str: ...

    @abstractmethod
    def write_text(self, path: Path, content: str) -> bool:
        """Write content, returning False when the file already held it."""

    def list_files(
        self,
        directory: Path,
        *,
        pattern: str = "*",
        recursive: bool = False,
    ) -> list[Path]:
        """List files under directory matching a glob on the file name.

        Hidden files are skipped. Results are sorted by path so callers see
        the same order on every platform.
        """
        if not self.is_dir(directory):
            return []
        iterator = directory.rglob("*") if recursive else directory.iterdir()
        found: list[Path] = []
        for item in iterator:
            rel = item.relative_to(directory)
            if any(part.startswith(".") for part in rel.parts):
                continue
            if not item.is_file():
                continue
            if fnmatch.fnmatch(item.name, pattern):
                found.append(item)
        return sorted(found)

    @abstractmethod
    def ensure_dir(self, path: Path) -> None: ...


class LocalFileOps(FileOps):
    """Reads and writes the local disk."""

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")

    def write_text(self, path: Path, content: str) -> bool:
        if path.is_file() and path.read_text(encoding="utf-8") == content:
            log.debug("write_skipped_unchanged", path=str(path))
            return False
        self.ensure_dir(path.parent)
        # newline="" keeps "\n" endings on every platform
        with path.open("w", encoding="utf-8", newline="") as f:
            f.write(content)
        log.debug("file_written", path=str(path), bytes=len(content))
        return True

    def ensure_dir(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)


class DryRunFileOps(LocalFileOps):
    """Reads the local disk but records writes in memory."""

    def __init__(self) -> None:
        self.written: dict[Path, str] = {}

    def exists(self, path: Path) -> bool:
        return path in self.written or super().exists(path)

    def read_text(self, path: Path) -> str:
        if path in self.written:
            return self.written[path]
        return super().read_text(path)

    def write_text(self, path: Path, content: str) -> bool:
        previous = self.written.get(path)
        if previous is None and path.is_file():
            previous = path.read_text(encoding="utf-8")
        self.written[path] = content
        log.debug("dry_run_write", path=str(path), bytes=len(content))
        return previous != content

    def ensure_dir(self, path: Path) -> None:  # noqa: ARG002
        return None


def create_file_ops(*, dry_run: bool = False) -> FileOps:
    """Select the file-system implementation for a run."""
    return DryRunFileOps() if dry_run else LocalFileOps()
