"""Integration tests for the `countrynorm` command."""

from __future__ import annotations

from pathlib import Path
import sqlite3

from typer.testing import CliRunner

from countrynorm import __version__
from countrynorm.cli import EXIT_USAGE, app


def _people_csv(tmp_path: Path) -> Path:
    source = tmp_path / "people.csv"
    source.write_text("name,country\nAnn,United States\nBo,fr\nCy,Atlantis\n", encoding="utf-8")
    return source


def test_normalizes_csv_column_in_place(tmp_path: Path) -> None:
    """A CSV run rewrites the named column and reports per-file progress."""

    runner = CliRunner()
    source = _people_csv(tmp_path)

    result = runner.invoke(
        app, [str(source), "--format", "csv", "--to", "iso2", "--location", "country"]
    )

    assert result.exit_code == 0, result.output
    assert source.read_text(encoding="utf-8") == "name,country\nAnn,US\nBo,FR\nCy,Atlantis\n"
    assert f"processing {source}... done (changed=2 unresolved=1)" in result.output.splitlines()
    assert "Files processed: 1" in result.output
    assert "Values changed: 2" in result.output


def test_normalizes_xml_attributes(tmp_path: Path) -> None:
    """XML runs accept attribute path expressions."""

    runner = CliRunner()
    source = tmp_path / "orders.xml"
    source.write_text('<orders><order ship-to="Deutschland"/></orders>', encoding="utf-8")

    result = runner.invoke(
        app,
        [str(source), "--format", "xml", "--to", "iso3", "--location", "//order/@ship-to"],
    )

    assert result.exit_code == 0, result.output
    assert source.read_text(encoding="utf-8") == '<orders><order ship-to="DEU" /></orders>'


def test_normalizes_database_column(tmp_path: Path) -> None:
    """Database runs print the column summary."""

    runner = CliRunner()
    database = tmp_path / "shop.db"
    connection = sqlite3.connect(database)
    connection.execute("CREATE TABLE customers (country TEXT)")
    connection.executemany("INSERT INTO customers VALUES (?)", [("Spain",), ("ES",)])
    connection.commit()
    connection.close()

    result = runner.invoke(
        app,
        [
            f"sqlite:///{database}",
            "--format",
            "db",
            "--to",
            "iso2",
            "--location",
            "customers.country",
        ],
    )

    assert result.exit_code == 0, result.output
    assert (
        "Column customers.country: distinct=2 updates=1 rows_changed=1 unresolved=0"
        in result.output
    )


def test_help_exits_with_usage_status() -> None:
    """`--help` prints usage and exits with status 64."""

    result = CliRunner().invoke(app, ["--help"])

    assert result.exit_code == EXIT_USAGE == 64
    assert "Usage" in result.output
    assert "--location" in result.output


def test_version_exits_successfully() -> None:
    """`--version` prints the package version."""

    result = CliRunner().invoke(app, ["--version"])

    assert result.exit_code == 0
    assert result.output.strip() == f"countrynorm {__version__}"


def test_missing_format_is_reported_before_any_work(tmp_path: Path) -> None:
    """Missing required options fail with a named option and leave data alone."""

    runner = CliRunner()
    source = _people_csv(tmp_path)
    before = source.read_bytes()

    result = runner.invoke(app, [str(source), "--to", "iso2", "--location", "country"])

    assert result.exit_code == 1
    assert "invalid options: Missing required option `--format`." in result.output
    assert source.read_bytes() == before


def test_unknown_target_format_lists_choices(tmp_path: Path) -> None:
    """Unknown `--to` values name the accepted formats."""

    result = CliRunner().invoke(
        app,
        [str(_people_csv(tmp_path)), "--format", "csv", "--to", "alpha", "--location", "country"],
    )

    assert result.exit_code == 1
    assert "Unknown target format `alpha`" in result.output
    assert "iso2, iso3, numeric, short_name, full_name" in result.output


def test_unsupported_source_format(tmp_path: Path) -> None:
    """Unknown `--format` values are configuration errors."""

    result = CliRunner().invoke(
        app, [str(tmp_path), "--format", "json", "--to", "iso2", "--location", "country"]
    )

    assert result.exit_code == 1
    assert "Unsupported source format `json`." in result.output


def test_missing_source_argument() -> None:
    """SOURCE is required once options are valid."""

    result = CliRunner().invoke(app, ["--format", "csv", "--to", "iso2", "--location", "c"])

    assert result.exit_code == 1
    assert "Missing required argument `SOURCE`." in result.output


def test_run_failures_are_labelled_and_non_destructive(tmp_path: Path) -> None:
    """Failures during a run exit 1 and keep the source bytes."""

    runner = CliRunner()
    source = _people_csv(tmp_path)
    before = source.read_bytes()

    result = runner.invoke(
        app, [str(source), "--format", "csv", "--to", "iso2", "--location", "nation"]
    )

    assert result.exit_code == 1
    assert "failed" in result.output
    assert "normalization failed: Column `nation` not found" in result.output
    assert source.read_bytes() == before


def test_missing_source_path_is_reported(tmp_path: Path) -> None:
    """Nonexistent sources produce a source error."""

    result = CliRunner().invoke(
        app,
        [str(tmp_path / "absent.csv"), "--format", "csv", "--to", "iso2", "--location", "c"],
    )

    assert result.exit_code == 1
    assert "does not exist" in result.output


def test_config_file_and_environment_precedence(tmp_path: Path) -> None:
    """CLI options override environment values, which override the config file."""

    runner = CliRunner()
    config_path = tmp_path / "countrynorm.yaml"
    config_path.write_text("format: csv\nto: iso3\nlocation: country\n", encoding="utf-8")

    file_only = _people_csv(tmp_path)
    result = runner.invoke(app, [str(file_only), "--config", str(config_path)])
    assert result.exit_code == 0, result.output
    assert file_only.read_text(encoding="utf-8").splitlines()[1] == "Ann,USA"

    env_source = tmp_path / "env.csv"
    env_source.write_text("country\nJapan\n", encoding="utf-8")
    result = runner.invoke(
        app,
        [str(env_source), "--config", str(config_path)],
        env={"COUNTRYNORM_TO": "numeric"},
    )
    assert result.exit_code == 0, result.output
    assert env_source.read_text(encoding="utf-8") == "country\n392\n"

    cli_source = tmp_path / "cli.csv"
    cli_source.write_text("country\nJapan\n", encoding="utf-8")
    result = runner.invoke(
        app,
        [str(cli_source), "--config", str(config_path), "--to", "iso2"],
        env={"COUNTRYNORM_TO": "numeric"},
    )
    assert result.exit_code == 0, result.output
    assert cli_source.read_text(encoding="utf-8") == "country\nJP\n"


def test_missing_config_file(tmp_path: Path) -> None:
    """Unreadable config files are reported as invalid options."""

    result = CliRunner().invoke(
        app, [str(tmp_path), "--config", str(tmp_path / "absent.yaml")]
    )

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_verbose_logs_unresolved_values(tmp_path: Path) -> None:
    """`--verbose` enables debug events for unresolved values."""

    source = _people_csv(tmp_path)

    result = CliRunner().invoke(
        app,
        [str(source), "--format", "csv", "--to", "iso2", "--location", "country", "--verbose"],
    )

    assert result.exit_code == 0, result.output
    assert "event=unresolved" in result.output
    assert "value=Atlantis" in result.output
