"""Non-fatal generation warnings.

Fatal problems are raised as errors (see ``core.errors``). Everything that
degrades output without invalidating it is recorded here and shown as a
summary once the run completes.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from sqlitebridge.core.logging import get_logger

log = get_logger("diagnostics")


@dataclass(frozen=True, kw_only=True)
class GenerationWarning:
    """A reportable, non-fatal inconsistency."""

    message: str
    source: str | None = None

    @property
    def kind(self) -> str:
        return type(self).__name__


@dataclass(frozen=True, kw_only=True)
class UnknownTypeWarning(GenerationWarning):
    """Column type with no known target equivalent; rendered as opaque."""

    table: str
    column: str
    sql_type: str


@dataclass(frozen=True, kw_only=True)
class OrphanQueryWarning(GenerationWarning):
    """Query file whose table is not part of the schema."""

    query_file: str
    table: str


@dataclass(frozen=True, kw_only=True)
class SkippedStatementWarning(GenerationWarning):
    """Migration statement that does not change the schema."""

    line: int
    keyword: str


@dataclass
class Diagnostics:
    """Collects warnings in the order they are encountered."""

    warnings: list[GenerationWarning] = field(default_factory=list)

    def add(self, warning: GenerationWarning) -> None:
        self.warnings.append(warning)
        log.info(
            "warning_recorded",
            kind=warning.kind,
            message=warning.message,
            source=warning.source,
        )

    def of_kind[W: GenerationWarning](self, kind: type[W]) -> list[W]:
        return [w for w in self.warnings if isinstance(w, kind)]

    def __iter__(self) -> Iterator[GenerationWarning]:
        return iter(self.warnings)

    def __len__(self) -> int:
        return len(self.warnings)
