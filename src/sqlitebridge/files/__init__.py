"""File operations module - the file-system collaborator of a run."""

from sqlitebridge.files.ops import DryRunFileOps, FileOps, LocalFileOps, create_file_ops

__all__ = ["DryRunFileOps", "FileOps", "LocalFileOps", "create_file_ops"]
