"""Country record and output format types.

Key types:
- `OutputFormat`: closed set of representations a value can be normalized to.
- `CountryRecord`: canonical record for one country with all its aliases.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class OutputFormat(str, Enum):
    """Representation emitted for a resolved country."""

    ISO2 = "iso2"
    ISO3 = "iso3"
    NUMERIC = "numeric"
    SHORT_NAME = "short_name"
    FULL_NAME = "full_name"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        """Return the valid format keys in declaration order."""

        return tuple(member.value for member in cls)

    @classmethod
    def parse(cls, value: OutputFormat | str) -> OutputFormat:
        """Parse a format key, tolerating case, spaces and dashes.

        Raises:
            ValueError: If the value names no known format.
        """

        if isinstance(value, OutputFormat):
            return value
        token = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        for member in cls:
            if member.value == token:
                return member
        raise ValueError(
            f"Unknown target format `{value}`; expected one of: {', '.join(cls.values())}."
        )


@dataclass(frozen=True, slots=True)
class CountryRecord:
    """Canonical record for one country.

    Attributes:
        iso2: ISO 3166-1 alpha-2 code.
        iso3: ISO 3166-1 alpha-3 code.
        numeric_code: ISO 3166-1 numeric code, zero padded to three digits.
        short_name: Common short name (for example `Bolivia`).
        full_name: Official name, or the short name when none is defined.
        aliases: Every recognized spelling, codes and names included.
    """

    iso2: str
    iso3: str
    numeric_code: str
    short_name: str
    full_name: str
    aliases: frozenset[str] = field(default_factory=frozenset)

    def project(self, to: OutputFormat) -> str:
        """Return this record rendered in the requested output format."""

        if to is OutputFormat.ISO2:
            return self.iso2
        if to is OutputFormat.ISO3:
            return self.iso3
        if to is OutputFormat.NUMERIC:
            return self.numeric_code
        if to is OutputFormat.SHORT_NAME:
            return self.short_name
        return self.full_name
