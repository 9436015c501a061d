"""Unit tests for the relational (SQLite) adapter."""

from __future__ import annotations

from pathlib import Path
import sqlite3

import pytest

from countrynorm.adapters.relational import (
    RelationalAdapter,
    database_path_from_locator,
    quote_identifier,
)
from countrynorm.errors import ConfigurationError, SourceError


def _create_database(path: Path, values: list[object]) -> Path:
    connection = sqlite3.connect(path)
    try:
        connection.execute("CREATE TABLE customers (id INTEGER PRIMARY KEY, country)")
        connection.executemany(
            "INSERT INTO customers (country) VALUES (?)", [(value,) for value in values]
        )
        connection.commit()
    finally:
        connection.close()
    return path


def _column_values(path: Path) -> list[object]:
    connection = sqlite3.connect(path)
    try:
        return [row[0] for row in connection.execute("SELECT country FROM customers ORDER BY id")]
    finally:
        connection.close()


def test_quote_identifier_escapes_double_quotes() -> None:
    """Identifiers are always quoted and embedded quotes doubled."""

    assert quote_identifier("country") == '"country"'
    assert quote_identifier('odd"name') == '"odd""name"'


@pytest.mark.parametrize(
    ("locator", "expected"),
    [
        ("data/app.db", "data/app.db"),
        ("sqlite:///data/app.db", "data/app.db"),
        ("sqlite:////var/lib/app.db", "/var/lib/app.db"),
        ("sqlite://", ":memory:"),
    ],
)
def test_database_path_from_locator(locator: str, expected: str) -> None:
    """Plain paths and SQLite URLs map to database paths."""

    assert database_path_from_locator(locator) == expected


def test_database_path_from_blank_locator_fails() -> None:
    """Blank locators are configuration errors."""

    with pytest.raises(ConfigurationError, match="must not be empty"):
        database_path_from_locator("   ")


def test_duplicate_spellings_share_one_update(tmp_path: Path) -> None:
    """Every distinct spelling mapping to one output is rewritten together."""

    database = _create_database(tmp_path / "app.db", ["USA", "US", "usa", "France"])

    report = RelationalAdapter("customers.country", "iso2").normalize(database)

    assert _column_values(database) == ["US", "US", "US", "FR"]
    assert report.distinct_values == 4
    assert report.updates == 2
    assert report.rows_changed == 3
    assert report.unresolved_values == []


def test_second_run_issues_no_updates(tmp_path: Path) -> None:
    """Normalized columns are left alone on a repeated run."""

    database = _create_database(tmp_path / "app.db", ["Germany", "deu", "Spain"])
    adapter = RelationalAdapter("customers.country", "iso3")

    adapter.normalize(database)
    report = adapter.normalize(database)

    assert _column_values(database) == ["DEU", "DEU", "ESP"]
    assert report.updates == 0
    assert report.rows_changed == 0


def test_non_text_and_unresolved_values_are_kept(tmp_path: Path) -> None:
    """NULLs, reals, blobs, and unknown spellings stay as stored."""

    database = _create_database(tmp_path / "app.db", [None, 2.5, b"\x00", "Atlantis", "", "fr"])

    report = RelationalAdapter("customers.country", "short_name").normalize(database)

    assert _column_values(database) == [None, 2.5, b"\x00", "Atlantis", "", "France"]
    assert report.distinct_values == 3
    assert report.unresolved_values == ["Atlantis"]
    assert report.updates == 1


def test_integer_values_are_read_as_numeric_codes(tmp_path: Path) -> None:
    """Integers resolve as zero-padded ISO numeric codes."""

    database = _create_database(tmp_path / "app.db", [840, 4, "Spain", 999])

    report = RelationalAdapter("customers.country", "iso2").normalize(database)

    assert _column_values(database) == ["US", "AF", "ES", 999]
    assert report.unresolved_values == ["999"]
    assert report.updates == 3


def test_integer_numeric_codes_are_already_normalized(tmp_path: Path) -> None:
    """An integer code equal to its numeric output needs no update."""

    database = _create_database(tmp_path / "app.db", [840, 4])

    report = RelationalAdapter("customers.country", "numeric").normalize(database)

    assert _column_values(database) == [840, 4]
    assert report.updates == 0


def test_table_and_column_names_match_case_insensitively(tmp_path: Path) -> None:
    """Identifiers resolve the way SQLite resolves them, ignoring case."""

    database = tmp_path / "app.db"
    connection = sqlite3.connect(database)
    connection.execute("CREATE TABLE Customers (Country TEXT)")
    connection.execute("INSERT INTO Customers VALUES ('Italy')")
    connection.commit()
    connection.close()

    report = RelationalAdapter("customers.country", "iso2").normalize(database)

    connection = sqlite3.connect(database)
    try:
        assert [row[0] for row in connection.execute("SELECT Country FROM Customers")] == ["IT"]
    finally:
        connection.close()
    assert report.rows_changed == 1


def test_sqlite_url_locator(tmp_path: Path) -> None:
    """`sqlite:///` URLs address the same file as its path."""

    database = _create_database(tmp_path / "app.db", ["United Kingdom"])

    RelationalAdapter("customers.country", "iso2").normalize(f"sqlite:///{database}")

    assert _column_values(database) == ["GB"]


@pytest.mark.parametrize(
    ("table_column", "message"),
    [
        ("suppliers.country", "Table `suppliers` does not exist"),
        ("customers.nation", "Column `nation` does not exist"),
    ],
)
def test_missing_schema_objects_fail_without_changes(
    tmp_path: Path, checksum, table_column: str, message: str
) -> None:
    """Missing tables or columns raise before any data is touched."""

    database = _create_database(tmp_path / "app.db", ["USA"])
    before = checksum(database)

    with pytest.raises(ConfigurationError, match=message):
        RelationalAdapter(table_column, "iso2").normalize(database)

    assert checksum(database) == before
    assert _column_values(database) == ["USA"]


def test_malformed_table_column_is_rejected_at_construction() -> None:
    """The location must name both a table and a column."""

    with pytest.raises(ConfigurationError, match="table.column"):
        RelationalAdapter("customers", "iso2")


def test_missing_database_file_is_source_error(tmp_path: Path) -> None:
    """Absent database files are reported instead of silently created."""

    missing = tmp_path / "absent.db"

    with pytest.raises(SourceError, match="does not exist"):
        RelationalAdapter("customers.country", "iso2").normalize(missing)

    assert not missing.exists()


def test_normalize_connection_uses_open_connection() -> None:
    """An open in-memory connection can be normalized directly."""

    connection = sqlite3.connect(":memory:")
    connection.execute('CREATE TABLE "order lines" ("ship to" TEXT)')
    connection.executemany('INSERT INTO "order lines" VALUES (?)', [("Japan",), ("jp",)])
    connection.commit()

    report = RelationalAdapter("order lines.ship to", "numeric").normalize_connection(connection)

    values = [row[0] for row in connection.execute('SELECT "ship to" FROM "order lines"')]
    assert values == ["392", "392"]
    assert report.updates == 1
    assert report.rows_changed == 2
    connection.close()
