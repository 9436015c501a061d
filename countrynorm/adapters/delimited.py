"""Delimited-text (CSV/TSV) adapter.

Rewrites one named column across one file, or every `*.csv` / `*.tsv` file in
a directory. The delimiter, line terminator and UTF-8 BOM of each input are
kept, the header and every other column pass through unchanged, and the file
is replaced atomically. Files in which no cell changes are not rewritten. In a
rewritten file fields are quoted only where needed, whatever quoting the input
used, and a missing final line break stays missing.
"""

from __future__ import annotations

import csv
from functools import partial
import io
import os
from pathlib import Path
from typing import TextIO

from ..errors import ConfigurationError, NormalizationError, SourceError
from ..io.atomic import KeepOriginal, atomic_replace
from ..lookup.records import OutputFormat
from ..lookup.resolver import CountryResolver, Resolved
from ..models.datatypes import FileReport
from ..telemetry.logger import RunLogger
from .batch import ProgressListener, run_batch

DELIMITED_PATTERNS = ("*.csv", "*.tsv")

_SNIFF_DELIMITERS = ",;\t|"
_SNIFF_SAMPLE_CHARS = 4096
_UTF8_BOM = b"\xef\xbb\xbf"


def _detect_line_terminator(sample: str) -> str:
    """Return the line terminator used by the first physical line."""

    for position, character in enumerate(sample):
        if character == "\n":
            return "\n"
        if character == "\r":
            if sample[position + 1 : position + 2] == "\n":
                return "\r\n"
            return "\r"
    return "\n"


def _ends_with_line_break(path: Path) -> bool:
    """Return whether the file's last byte ends a line."""

    with path.open("rb") as raw:
        if raw.seek(0, os.SEEK_END) == 0:
            return False
        raw.seek(-1, os.SEEK_END)
        return raw.read(1) in (b"\n", b"\r")


def _detect_delimiter(sample: str, path: Path) -> str:
    """Sniff the field delimiter, falling back on the file extension."""

    try:
        return csv.Sniffer().sniff(sample, delimiters=_SNIFF_DELIMITERS).delimiter
    except csv.Error:
        return "\t" if path.suffix.lower() == ".tsv" else ","


def _column_index(header: list[str], column: str) -> int | None:
    """Find the target column, preferring an exact header match."""

    if column in header:
        return header.index(column)
    stripped = [name.strip() for name in header]
    if column.strip() in stripped:
        return stripped.index(column.strip())
    return None


class DelimitedTextAdapter:
    """Normalize one column of delimited-text files in place."""

    stage = "csv"

    def __init__(
        self,
        column: str,
        to: OutputFormat | str,
        resolver: CountryResolver | None = None,
        encoding: str = "utf-8",
        progress: ProgressListener | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        if not column.strip():
            raise ConfigurationError(
                "Column name for delimited-text sources must not be empty.",
                hint="Pass the header name of the column via `--location`.",
            )
        self.column = column
        self.to = OutputFormat.parse(to)
        self._resolver = resolver or CountryResolver()
        self._encoding = encoding
        self._progress = progress
        self._run_logger = run_logger

    def normalize(self, location: Path) -> list[FileReport]:
        """Normalize the configured column in every delimited file at `location`."""

        return run_batch(Path(location), DELIMITED_PATTERNS, self.normalize_file, self._progress)

    def normalize_file(self, path: Path) -> FileReport:
        """Rewrite one file, replacing it only after the full output is written."""

        if self._run_logger is not None:
            self._run_logger.log_source_start(self.stage, path)
        encoding = self._effective_encoding(path)
        try:
            with path.open("r", encoding=encoding, newline="") as source:
                report = self._rewrite(path, source, encoding)
        except NormalizationError as exc:
            self._log_failure(type(exc).__name__)
            raise
        except (csv.Error, UnicodeError) as exc:
            self._log_failure(type(exc).__name__)
            raise SourceError(
                f"Failed to parse delimited file `{path}`: {exc}",
                hint="Check the file encoding (`--encoding`) and quoting.",
            ) from exc
        except OSError as exc:
            self._log_failure(type(exc).__name__)
            raise SourceError(f"Failed to rewrite delimited file `{path}`: {exc}") from exc

        if self._run_logger is not None:
            self._run_logger.log_source_complete(self.stage, path, **report.as_counts())
        return report

    def _effective_encoding(self, path: Path) -> str:
        """Switch UTF-8 to `utf-8-sig` when the file starts with a BOM."""

        if self._encoding.lower().replace("_", "-") not in {"utf-8", "utf8"}:
            return self._encoding
        try:
            with path.open("rb") as raw:
                head = raw.read(len(_UTF8_BOM))
        except OSError as exc:
            raise SourceError(f"Failed to read delimited file `{path}`: {exc}") from exc
        return "utf-8-sig" if head == _UTF8_BOM else self._encoding

    def _rewrite(self, path: Path, source: TextIO, encoding: str) -> FileReport:
        """Validate the header, then stream resolved rows into the replacement.

        Files where no cell changes are left byte-for-byte as they were.
        """

        sample = source.read(_SNIFF_SAMPLE_CHARS)
        source.seek(0)
        delimiter = _detect_delimiter(sample, path)
        line_terminator = _detect_line_terminator(sample)
        keep_final_terminator = _ends_with_line_break(path)

        reader = csv.reader(source, delimiter=delimiter, quotechar='"', doublequote=True)
        header = next(reader, None)
        if header is None:
            raise ConfigurationError(
                f"Delimited file `{path}` has no header row; column `{self.column}` not found."
            )
        index = _column_index(header, self.column)
        if index is None:
            raise ConfigurationError(
                f"Column `{self.column}` not found in header of `{path}`.",
                hint=f"Available columns: {', '.join(header)}.",
            )

        make_writer = partial(
            csv.writer,
            delimiter=delimiter,
            quotechar='"',
            doublequote=True,
            lineterminator=line_terminator,
        )
        report = FileReport(path=path)
        unresolved_seen: set[str] = set()
        with atomic_replace(path, encoding=encoding, newline="") as target:
            writer = make_writer(target)
            # Rows are written one behind so the last one can drop its terminator.
            pending = header
            for row in reader:
                if index < len(row):
                    row[index] = self._resolve_cell(row[index], report, unresolved_seen)
                writer.writerow(pending)
                pending = row
            if report.changed == 0:
                raise KeepOriginal()
            last_line = io.StringIO()
            make_writer(last_line).writerow(pending)
            text = last_line.getvalue()
            if not keep_final_terminator:
                text = text[: -len(line_terminator)]
            target.write(text)
        return report

    def _resolve_cell(self, value: str, report: FileReport, unresolved_seen: set[str]) -> str:
        """Return the replacement for one cell and update counters."""

        report.matched += 1
        result = self._resolver.resolve(value, self.to)
        if isinstance(result, Resolved):
            if result.output != value:
                report.changed += 1
            return result.output
        if value.strip():
            report.unresolved += 1
            if self._run_logger is not None and value not in unresolved_seen:
                unresolved_seen.add(value)
                self._run_logger.log_unresolved(self.stage, report.path, value)
        return value

    def _log_failure(self, error_type: str) -> None:
        if self._run_logger is not None:
            self._run_logger.log_failure(self.stage, error_type)
