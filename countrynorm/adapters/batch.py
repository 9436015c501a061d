"""Batch-over-glob helper shared by the file-based adapters.

Responsibilities:
- Expand a file-or-directory location into the files to process.
- Run a per-file processing function over them in order, reporting progress.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Protocol, Sequence

from ..errors import SourceError
from ..models.datatypes import FileReport


class ProgressListener(Protocol):
    """Receives per-file progress notifications from file adapters."""

    def file_started(self, path: Path) -> None:
        """Called before a file is read."""

    def file_finished(self, report: FileReport) -> None:
        """Called after a file has been replaced successfully."""


class NullProgress:
    """Progress listener that ignores every notification."""

    def file_started(self, path: Path) -> None:
        _ = path

    def file_finished(self, report: FileReport) -> None:
        _ = report


def iter_source_files(location: Path, patterns: Sequence[str]) -> list[Path]:
    """Return the files a location refers to.

    A directory expands to its direct children matching any of `patterns`,
    sorted by name. Any other path is returned as the single file to process.

    Raises:
        SourceError: If the location does not exist.
    """

    if location.is_dir():
        matches = {
            candidate
            for pattern in patterns
            for candidate in location.glob(pattern)
            if candidate.is_file()
        }
        return sorted(matches)
    if not location.exists():
        raise SourceError(
            f"Source `{location}` does not exist.",
            hint="Pass an existing file or directory as SOURCE.",
        )
    return [location]


def run_batch(
    location: Path,
    patterns: Sequence[str],
    process_file: Callable[[Path], FileReport],
    progress: ProgressListener | None = None,
) -> list[FileReport]:
    """Apply `process_file` to every file under `location`, strictly in order.

    The first failing file aborts the batch; files already processed keep
    their rewritten content.
    """

    listener = progress or NullProgress()
    reports: list[FileReport] = []
    for path in iter_source_files(location, patterns):
        listener.file_started(path)
        report = process_file(path)
        listener.file_finished(report)
        reports.append(report)
    return reports
