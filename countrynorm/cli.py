"""Command-line interface for countrynorm.

Responsibilities:
- Expose the single `countrynorm` command.
- Merge CLI options with `--config` and `COUNTRYNORM_*` defaults, validate
  them up front, and hand the resulting config to the driver.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from . import __version__
from .cli_rendering import FileProgressReporter, echo_outcome_summary, exit_with_command_error
from .config import SUPPORTED_SOURCE_FORMATS, ConfigLoader, NormalizeConfig
from .driver import run_normalization
from .errors import ConfigurationError
from .lookup.resolver import CountryResolver
from .parsing import normalize_optional_string
from .telemetry.logger import RunLogger

EXIT_USAGE = 64

app = typer.Typer(
    name="countrynorm",
    add_completion=False,
    help="Normalize country names in CSV, XML, or SQLite sources in place.",
)


def _help_callback(ctx: typer.Context, value: bool) -> None:
    """Print usage and exit with the dedicated usage status."""

    if not value or ctx.resilient_parsing:
        return
    typer.echo(ctx.get_help())
    raise typer.Exit(code=EXIT_USAGE)


def _version_callback(value: bool) -> None:
    """Print the package version and exit successfully."""

    if not value:
        return
    typer.echo(f"countrynorm {__version__}")
    raise typer.Exit(code=0)


def _load_yaml_config(config_path: Path | None) -> NormalizeConfig | None:
    """Load a YAML config file when requested and map failures to config errors."""

    if config_path is None:
        return None

    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise ConfigurationError(
            f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config keys/values and rerun.",
        ) from exc
    except OSError as exc:
        raise ConfigurationError(
            f"Failed to read config file `{config_path}`: {exc}",
            hint="Verify file permissions.",
        ) from exc


def _resolve_config(
    cli_config: NormalizeConfig, config_path: Path | None
) -> NormalizeConfig:
    """Resolve the effective config with `cli` > `env` > `file` precedence."""

    file_config = _load_yaml_config(config_path)
    try:
        env_config = ConfigLoader.from_env()
    except ValueError as exc:
        raise ConfigurationError(f"Invalid environment configuration: {exc}") from exc
    config = ConfigLoader.resolve(cli_config, env_config, file_config)
    config.validate()
    return config


@app.command(context_settings={"help_option_names": []})
def normalize_command(
    source: Annotated[
        str | None,
        typer.Argument(
            metavar="SOURCE",
            help="File or directory (csv/xml), or SQLite path / `sqlite:///` URL (db).",
            show_default=False,
        ),
    ] = None,
    source_format: Annotated[
        str | None,
        typer.Option(
            "--format",
            help=f"Source format: {' | '.join(SUPPORTED_SOURCE_FORMATS)}.",
        ),
    ] = None,
    to: Annotated[
        str | None,
        typer.Option(
            "--to",
            help=f"Target format: {' | '.join(CountryResolver.formats())}.",
        ),
    ] = None,
    location: Annotated[
        str | None,
        typer.Option(
            "--location",
            help="Column name (csv), path expression (xml), or `table.column` (db).",
        ),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to YAML config file with option defaults."),
    ] = None,
    encoding: Annotated[
        str | None,
        typer.Option("--encoding", help="Text encoding of CSV/TSV sources (default utf-8)."),
    ] = None,
    verbose: Annotated[
        bool | None,
        typer.Option("--verbose/--quiet", help="Log every unresolved value."),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Print the version and exit.",
        ),
    ] = False,
    show_help: Annotated[
        bool,
        typer.Option(
            "--help",
            callback=_help_callback,
            is_eager=True,
            help="Show this message and exit.",
        ),
    ] = False,
) -> None:
    """Normalize country names found in SOURCE to the `--to` format, in place."""

    _ = version
    _ = show_help
    cli_config = NormalizeConfig(
        source_format=source_format.strip().lower() if source_format else None,
        to=normalize_optional_string(to),
        location=normalize_optional_string(location),
        encoding=normalize_optional_string(encoding),
        verbose=verbose,
    )
    try:
        config = _resolve_config(cli_config, config_file)
        if normalize_optional_string(source) is None:
            raise ConfigurationError(
                "Missing required argument `SOURCE`.",
                hint="Pass a file, directory, or database locator as the last argument.",
            )
    except ConfigurationError as exc:
        exit_with_command_error("invalid options", exc)

    run_logger = RunLogger(level="DEBUG" if config.verbose else "INFO")
    progress = FileProgressReporter() if config.source_format != "db" else None
    try:
        outcome = run_normalization(
            config,
            source or "",
            progress=progress,
            run_logger=run_logger,
        )
    except Exception as exc:
        if progress is not None:
            progress.file_failed()
        exit_with_command_error("normalization failed", exc)

    echo_outcome_summary(outcome)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
