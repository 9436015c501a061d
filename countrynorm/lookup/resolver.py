"""Resolve free-text country names and codes to a target representation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .records import OutputFormat
from .table import LookupTable, default_lookup_table


@dataclass(frozen=True, slots=True)
class Resolved:
    """Input matched a country; `output` is the projected representation."""

    output: str


@dataclass(frozen=True, slots=True)
class Unresolved:
    """Input matched no country and must be left as-is by callers."""


UNRESOLVED = Unresolved()

ResolutionResult = Union[Resolved, Unresolved]


class CountryResolver:
    """Look up values in a `LookupTable` and project them to an `OutputFormat`."""

    def __init__(self, table: LookupTable | None = None) -> None:
        """Initialize with an explicit table, or the lazily built bundled one."""

        self._table = table

    @property
    def table(self) -> LookupTable:
        """Return the backing lookup table, building the default on first use."""

        if self._table is None:
            self._table = default_lookup_table()
        return self._table

    @staticmethod
    def formats() -> tuple[str, ...]:
        """Return the closed set of valid target format keys."""

        return OutputFormat.values()

    def resolve(self, value: str, to: OutputFormat | str) -> ResolutionResult:
        """Resolve `value` and project it to `to`.

        Surrounding whitespace is ignored and matching is case-insensitive.
        Blank input and unknown spellings yield `UNRESOLVED`.

        Raises:
            ValueError: If `to` is not a known format.
        """

        target = OutputFormat.parse(to)
        text = value.strip()
        if not text:
            return UNRESOLVED
        record = self.table.get(text)
        if record is None:
            return UNRESOLVED
        return Resolved(record.project(target))

    def resolve_or_none(self, value: str, to: OutputFormat | str) -> str | None:
        """Return the resolved output string, or `None` when unresolved."""

        result = self.resolve(value, to)
        if isinstance(result, Resolved):
            return result.output
        return None
