"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for failure diagnostics,
per-file progress lines, and run summaries.
"""

from __future__ import annotations

from pathlib import Path
from typing import NoReturn

import typer

from .errors import NormalizationError
from .models.datatypes import FileReport, NormalizationOutcome

EXIT_FAILURE = 1


def exit_with_command_error(label: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for a failure and exit with code 1."""

    if isinstance(exc, NormalizationError):
        typer.secho(f"{label}: {exc.detail}", fg=typer.colors.RED, err=True)
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{label}: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=EXIT_FAILURE) from exc


class FileProgressReporter:
    """Render one `processing <path>... done` line per file.

    The line is printed whole once the file finishes, so log lines on stderr
    never split it.
    """

    def __init__(self) -> None:
        self._current: Path | None = None

    def file_started(self, path: Path) -> None:
        """Remember the file whose progress line is pending."""

        self._current = path

    def file_finished(self, report: FileReport) -> None:
        """Print the progress line with change counters."""

        typer.echo(
            f"processing {report.path}... "
            f"done (changed={report.changed} unresolved={report.unresolved})"
        )
        self._current = None

    def file_failed(self) -> None:
        """Print the progress line of a file that failed mid-run."""

        if self._current is not None:
            typer.echo(f"processing {self._current}... failed")
            self._current = None


def echo_outcome_summary(outcome: NormalizationOutcome) -> None:
    """Print the run-level summary after a successful normalization."""

    column = outcome.column_report
    if column is not None:
        typer.echo(
            f"Column {column.table}.{column.column}: "
            f"distinct={column.distinct_values} updates={column.updates} "
            f"rows_changed={column.rows_changed} unresolved={len(column.unresolved_values)}"
        )
        return
    typer.echo(f"Files processed: {len(outcome.file_reports)}")
    typer.echo(f"Values changed: {outcome.total_changed}")
