"""Shared pytest fixtures for the full countrynorm test suite."""

from __future__ import annotations

from collections.abc import Iterator
import hashlib
from pathlib import Path

from loguru import logger
import pytest

from countrynorm.lookup import CountryRecord, CountryResolver, LookupTable


@pytest.fixture(autouse=True)
def _reset_loguru_sinks() -> Iterator[None]:
    """Drop sinks bound to captured streams once a test finishes."""

    yield
    logger.remove()


@pytest.fixture(autouse=True)
def _clear_countrynorm_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep ambient `COUNTRYNORM_*` variables from leaking into option resolution."""

    for key in (
        "COUNTRYNORM_FORMAT",
        "COUNTRYNORM_TO",
        "COUNTRYNORM_LOCATION",
        "COUNTRYNORM_ENCODING",
        "COUNTRYNORM_VERBOSE",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def resolver() -> CountryResolver:
    """Provide a resolver backed by the bundled lookup table."""

    return CountryResolver()


@pytest.fixture
def tiny_table() -> LookupTable:
    """Provide a two-country table independent of the bundled dataset."""

    return LookupTable(
        [
            CountryRecord(
                iso2="AA",
                iso3="AAA",
                numeric_code="001",
                short_name="Alphaland",
                full_name="Republic of Alphaland",
                aliases=frozenset({"AA", "AAA", "001", "Alphaland", "Republic of Alphaland"}),
            ),
            CountryRecord(
                iso2="BB",
                iso3="BBB",
                numeric_code="002",
                short_name="Betaland",
                full_name="Kingdom of Betaland",
                aliases=frozenset({"BB", "BBB", "002", "Betaland", "Beta"}),
            ),
        ]
    )


def sha256_of(path: Path) -> str:
    """Return the hex digest of a file's bytes."""

    return hashlib.sha256(path.read_bytes()).hexdigest()


@pytest.fixture
def checksum():
    """Provide a file checksum helper for non-destructive failure tests."""

    return sha256_of
