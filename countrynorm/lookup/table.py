"""Canonical country lookup table.

Responsibilities:
- Build one immutable `CountryRecord` per ISO 3166-1 country from the data
  bundled with `pycountry`, enriched with the aliases in `aliases.yaml`.
- Index every alias under a case- and whitespace-insensitive key.
- Reject aliases that would map to more than one country.
"""

from __future__ import annotations

from functools import lru_cache
from importlib import resources
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

import pycountry
import yaml

from ..errors import AmbiguousAliasError
from ..parsing import normalize_lookup_key, normalize_optional_string
from .records import CountryRecord

_ALIASES_RESOURCE = "aliases.yaml"


class LookupTable:
    """Read-only alias index over a fixed set of country records."""

    def __init__(self, records: Iterable[CountryRecord]) -> None:
        """Index records by alias key.

        Raises:
            AmbiguousAliasError: If one alias key belongs to two records.
        """

        index: dict[str, CountryRecord] = {}
        ordered: list[CountryRecord] = []
        for record in records:
            ordered.append(record)
            for alias in record.aliases:
                key = normalize_lookup_key(alias)
                if not key:
                    continue
                existing = index.get(key)
                if existing is not None and existing.iso2 != record.iso2:
                    raise AmbiguousAliasError(alias, existing.iso2, record.iso2)
                index[key] = record
        self._index: Mapping[str, CountryRecord] = MappingProxyType(index)
        self._records = tuple(sorted(ordered, key=lambda item: item.iso2))

    def get(self, value: str) -> CountryRecord | None:
        """Return the record matching `value`, or `None` when nothing matches."""

        return self._index.get(normalize_lookup_key(value))

    def records(self) -> tuple[CountryRecord, ...]:
        """Return all records sorted by alpha-2 code."""

        return self._records

    def __contains__(self, value: object) -> bool:
        return isinstance(value, str) and self.get(value) is not None

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CountryRecord]:
        return iter(self._records)


def load_bundled_aliases() -> dict[str, tuple[str, ...]]:
    """Load the bundled alpha-2 to extra-aliases mapping."""

    raw_text = resources.files(__package__).joinpath(_ALIASES_RESOURCE).read_text(
        encoding="utf-8"
    )
    return parse_alias_payload(yaml.safe_load(raw_text), source_label=_ALIASES_RESOURCE)


def parse_alias_payload(payload: Any, source_label: str) -> dict[str, tuple[str, ...]]:
    """Validate an alias mapping payload of `ALPHA2: [alias, ...]` entries."""

    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValueError(f"Alias file `{source_label}` must contain a top-level mapping.")

    aliases: dict[str, tuple[str, ...]] = {}
    for raw_code, raw_values in payload.items():
        code = normalize_optional_string(raw_code)
        if code is None:
            raise ValueError(f"Alias file `{source_label}` contains a blank country code.")
        if isinstance(raw_values, str) or not isinstance(raw_values, list):
            raise ValueError(
                f"Alias file `{source_label}` entry `{code}` must be a list of strings."
            )
        values = tuple(
            text for text in (normalize_optional_string(item) for item in raw_values) if text
        )
        aliases[code.upper()] = values
    return aliases


def build_records(
    extra_aliases: Mapping[str, Iterable[str]] | None = None,
) -> list[CountryRecord]:
    """Build country records from `pycountry` plus extra aliases keyed by alpha-2.

    Raises:
        ValueError: If `extra_aliases` names an unknown alpha-2 code.
    """

    extras = dict(extra_aliases or {})
    known_codes = {country.alpha_2 for country in pycountry.countries}
    unknown = sorted(set(extras).difference(known_codes))
    if unknown:
        raise ValueError(f"Aliases reference unknown country code(s): {', '.join(unknown)}.")

    records: list[CountryRecord] = []
    for country in sorted(pycountry.countries, key=lambda item: item.alpha_2):
        name = country.name
        common_name = getattr(country, "common_name", None)
        official_name = getattr(country, "official_name", None)
        short_name = common_name or name
        full_name = official_name or name
        aliases = {
            country.alpha_2,
            country.alpha_3,
            country.numeric,
            name,
            short_name,
            full_name,
        }
        aliases.update(extras.get(country.alpha_2, ()))
        records.append(
            CountryRecord(
                iso2=country.alpha_2,
                iso3=country.alpha_3,
                numeric_code=country.numeric,
                short_name=short_name,
                full_name=full_name,
                aliases=frozenset(aliases),
            )
        )
    return records


@lru_cache(maxsize=1)
def default_lookup_table() -> LookupTable:
    """Return the process-wide lookup table, building it on first use."""

    return LookupTable(build_records(load_bundled_aliases()))
