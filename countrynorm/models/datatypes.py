"""Core datatypes shared across countrynorm modules.

Responsibilities:
- Represent per-source outcomes reported by adapters.
- Provide explicit typing for CLI rendering and log events.

Key types:
- `FileReport`: outcome of rewriting one delimited-text or markup file.
- `ColumnReport`: outcome of normalizing one relational column.
- `NormalizationOutcome`: what one driver run produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(slots=True)
class FileReport:
    """Counters collected while rewriting one file.

    Attributes:
        path: File that was rewritten.
        matched: Number of values inspected (cells or markup nodes).
        changed: Number of values replaced with a resolved output.
        unresolved: Number of non-empty values that matched no country.
    """

    path: Path
    matched: int = 0
    changed: int = 0
    unresolved: int = 0

    def as_counts(self) -> dict[str, int]:
        """Return counters as a mapping for structured log events."""

        return {
            "matched": self.matched,
            "changed": self.changed,
            "unresolved": self.unresolved,
        }


@dataclass(slots=True)
class ColumnReport:
    """Counters collected while normalizing one database column.

    Attributes:
        table: Target table name.
        column: Target column name.
        distinct_values: Number of distinct text values snapshotted up front.
        updates: Number of bulk `UPDATE` statements issued.
        rows_changed: Total rows affected by those updates.
        unresolved_values: Distinct values that matched no country, sorted.
    """

    table: str
    column: str
    distinct_values: int = 0
    updates: int = 0
    rows_changed: int = 0
    unresolved_values: list[str] = field(default_factory=list)

    def as_counts(self) -> dict[str, int]:
        """Return counters as a mapping for structured log events."""

        return {
            "distinct": self.distinct_values,
            "updates": self.updates,
            "rows_changed": self.rows_changed,
            "unresolved": len(self.unresolved_values),
        }


@dataclass(slots=True)
class NormalizationOutcome:
    """Result of one driver run.

    Attributes:
        source_format: Adapter that ran (`csv`, `xml`, or `db`).
        file_reports: Per-file reports for file-based adapters.
        column_report: Column report for the relational adapter.
    """

    source_format: str
    file_reports: list[FileReport] = field(default_factory=list)
    column_report: ColumnReport | None = None

    @property
    def total_changed(self) -> int:
        """Return values changed across files, or rows changed for a column."""

        if self.column_report is not None:
            return self.column_report.rows_changed
        return sum(report.changed for report in self.file_reports)
