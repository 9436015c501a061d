"""Relational (SQLite) adapter.

Normalizes one `table.column` in a SQLite database. Distinct column values are
snapshotted once and grouped by the output they resolve to; each group is
rewritten with one bulk `UPDATE ... WHERE column IN (...)`, committed on its
own so an interrupted run leaves every already-processed group in its final
state and the rest as originally stored.

Text values are resolved as stored; integer values are read as ISO numeric
codes (`4` is `004`). Other storage classes are left alone. Table and column
names match case-insensitively, as SQLite itself does.
"""

from __future__ import annotations

from contextlib import closing
from pathlib import Path
import sqlite3

from ..errors import ConfigurationError, NormalizationError, SourceError
from ..lookup.records import OutputFormat
from ..lookup.resolver import CountryResolver, Resolved
from ..models.datatypes import ColumnReport
from ..parsing import normalize_optional_string, parse_table_column
from ..telemetry.logger import RunLogger

_SQLITE_URL_PREFIXES = ("sqlite:///", "sqlite://")
_MEMORY_DATABASE = ":memory:"
_MAX_VALUES_PER_UPDATE = 500


def quote_identifier(name: str) -> str:
    """Quote an SQL identifier, escaping embedded double quotes."""

    return '"' + name.replace('"', '""') + '"'


def database_path_from_locator(locator: str) -> str:
    """Return the SQLite database path named by a path or `sqlite:///` URL.

    Raises:
        ConfigurationError: If the locator is blank.
    """

    text = normalize_optional_string(locator)
    if text is None:
        raise ConfigurationError(
            "Database connection string must not be empty.",
            hint="Pass a SQLite file path or `sqlite:///path/to.db` as SOURCE.",
        )
    for prefix in _SQLITE_URL_PREFIXES:
        if text.startswith(prefix):
            text = text[len(prefix):] or _MEMORY_DATABASE
            break
    return text


def _lookup_text(value: str | int) -> str:
    """Return the text a stored value is resolved by.

    Integers are read as ISO numeric codes, zero-padded to three digits.
    """

    if isinstance(value, int):
        return f"{value:03d}"
    return value


class RelationalAdapter:
    """Normalize one database column in bulk, once per distinct value."""

    stage = "db"

    def __init__(
        self,
        table_column: str,
        to: OutputFormat | str,
        resolver: CountryResolver | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        self.table, self.column = parse_table_column(table_column)
        self.to = OutputFormat.parse(to)
        self._resolver = resolver or CountryResolver()
        self._run_logger = run_logger

    def normalize(self, locator: str | Path) -> ColumnReport:
        """Connect to the database at `locator` and normalize the column."""

        database = database_path_from_locator(str(locator))
        if database != _MEMORY_DATABASE and not Path(database).is_file():
            raise SourceError(
                f"Database `{database}` does not exist.",
                hint="Pass the path of an existing SQLite database as SOURCE.",
            )
        try:
            connection = sqlite3.connect(database)
        except sqlite3.Error as exc:
            raise SourceError(f"Failed to connect to database `{database}`: {exc}") from exc
        with closing(connection):
            return self.normalize_connection(connection, source_label=database)

    def normalize_connection(
        self, connection: sqlite3.Connection, source_label: str = "connection"
    ) -> ColumnReport:
        """Normalize the column using an already open connection."""

        source = f"{source_label}:{self.table}.{self.column}"
        if self._run_logger is not None:
            self._run_logger.log_source_start(self.stage, source)
        try:
            report = self._apply_updates(connection)
        except NormalizationError as exc:
            self._log_failure(type(exc).__name__)
            raise
        except sqlite3.Error as exc:
            self._log_failure(type(exc).__name__)
            raise SourceError(
                f"Database error while normalizing `{self.table}.{self.column}` "
                f"in `{source_label}`: {exc}"
            ) from exc

        if self._run_logger is not None:
            self._run_logger.log_source_complete(self.stage, source, **report.as_counts())
        return report

    def _require_column(self, connection: sqlite3.Connection) -> tuple[str, str]:
        """Fail before touching data when the table or column is missing.

        SQLite identifiers are case-insensitive, so the names are matched that
        way and the stored spelling is returned.
        """

        row = connection.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ? COLLATE NOCASE",
            (self.table,),
        ).fetchone()
        if row is None:
            raise ConfigurationError(
                f"Table `{self.table}` does not exist.",
                hint="Check the table part of `--location <table>.<column>`.",
            )
        table = row[0]
        columns = [
            info[1]
            for info in connection.execute(f"PRAGMA table_info({quote_identifier(table)})")
        ]
        wanted = self.column.casefold()
        for column in columns:
            if column.casefold() == wanted:
                return table, column
        raise ConfigurationError(
            f"Column `{self.column}` does not exist on table `{self.table}`.",
            hint=f"Available columns: {', '.join(columns)}.",
        )

    def _distinct_values(
        self, connection: sqlite3.Connection, table: str, column: str
    ) -> list[str | int]:
        """Snapshot the distinct text and integer values of the column before any update."""

        query = (
            f"SELECT DISTINCT {quote_identifier(column)} "
            f"FROM {quote_identifier(table)} "
            f"WHERE typeof({quote_identifier(column)}) IN ('text', 'integer')"
        )
        values = [row[0] for row in connection.execute(query)]
        return sorted(values, key=lambda value: (isinstance(value, int), str(value)))

    def _plan_updates(
        self, values: list[str | int], report: ColumnReport
    ) -> dict[str, list[str | int]]:
        """Group distinct values that change by the output they resolve to."""

        plan: dict[str, list[str | int]] = {}
        for value in values:
            text = _lookup_text(value)
            result = self._resolver.resolve(text, self.to)
            if not isinstance(result, Resolved):
                if text.strip():
                    report.unresolved_values.append(text)
                    if self._run_logger is not None:
                        self._run_logger.log_unresolved(self.stage, self.column, text)
                continue
            if result.output != text:
                plan.setdefault(result.output, []).append(value)
        return plan

    def _apply_updates(self, connection: sqlite3.Connection) -> ColumnReport:
        table, column = self._require_column(connection)
        report = ColumnReport(table=self.table, column=self.column)
        values = self._distinct_values(connection, table, column)
        report.distinct_values = len(values)
        plan = self._plan_updates(values, report)

        quoted_table = quote_identifier(table)
        quoted_column = quote_identifier(column)
        for output in sorted(plan):
            originals = plan[output]
            for start in range(0, len(originals), _MAX_VALUES_PER_UPDATE):
                batch = originals[start : start + _MAX_VALUES_PER_UPDATE]
                placeholders = ", ".join("?" for _ in batch)
                statement = (
                    f"UPDATE {quoted_table} SET {quoted_column} = ? "
                    f"WHERE {quoted_column} IN ({placeholders})"
                )
                with connection:
                    cursor = connection.execute(statement, (output, *batch))
                report.updates += 1
                report.rows_changed += max(cursor.rowcount, 0)
        return report

    def _log_failure(self, error_type: str) -> None:
        if self._run_logger is not None:
            self._run_logger.log_failure(self.stage, error_type)
