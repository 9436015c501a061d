"""Adapter selection and run orchestration.

The driver validates a `NormalizeConfig`, builds the adapter its source
format selects, and runs `normalize` over one source location. Processing is
sequential and stops at the first failing file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

from .adapters.batch import ProgressListener
from .adapters.delimited import DelimitedTextAdapter
from .adapters.markup import MarkupAdapter
from .adapters.relational import RelationalAdapter
from .config import NormalizeConfig
from .errors import ConfigurationError
from .lookup.resolver import CountryResolver
from .models.datatypes import NormalizationOutcome
from .telemetry.logger import RunLogger

Adapter = Union[DelimitedTextAdapter, MarkupAdapter, RelationalAdapter]


def build_adapter(
    config: NormalizeConfig,
    resolver: CountryResolver | None = None,
    progress: ProgressListener | None = None,
    run_logger: RunLogger | None = None,
) -> Adapter:
    """Validate `config` and construct the adapter for its source format."""

    config.validate()
    location = config.location or ""
    if config.source_format == "csv":
        return DelimitedTextAdapter(
            column=location,
            to=config.target_format,
            resolver=resolver,
            encoding=config.effective_encoding,
            progress=progress,
            run_logger=run_logger,
        )
    if config.source_format == "xml":
        return MarkupAdapter(
            path_expression=location,
            to=config.target_format,
            resolver=resolver,
            progress=progress,
            run_logger=run_logger,
        )
    if config.source_format == "db":
        return RelationalAdapter(
            table_column=location,
            to=config.target_format,
            resolver=resolver,
            run_logger=run_logger,
        )
    raise ConfigurationError(f"Unsupported source format `{config.source_format}`.")


def run_normalization(
    config: NormalizeConfig,
    source: str,
    resolver: CountryResolver | None = None,
    progress: ProgressListener | None = None,
    run_logger: RunLogger | None = None,
) -> NormalizationOutcome:
    """Normalize `source` (a path, or a database locator for `db`) per `config`."""

    adapter = build_adapter(config, resolver=resolver, progress=progress, run_logger=run_logger)
    outcome = NormalizationOutcome(source_format=config.source_format or "")
    if isinstance(adapter, RelationalAdapter):
        outcome.column_report = adapter.normalize(source)
    else:
        outcome.file_reports = adapter.normalize(Path(source))
    return outcome
