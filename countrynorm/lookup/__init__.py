"""Country lookup table and resolver.

This package holds the canonical country records, the alias index built from
bundled data, and the resolver shared by every source adapter.
"""

from .records import CountryRecord, OutputFormat
from .resolver import UNRESOLVED, CountryResolver, Resolved, ResolutionResult, Unresolved
from .table import LookupTable, build_records, default_lookup_table

__all__ = [
    "CountryRecord",
    "CountryResolver",
    "LookupTable",
    "OutputFormat",
    "Resolved",
    "ResolutionResult",
    "UNRESOLVED",
    "Unresolved",
    "build_records",
    "default_lookup_table",
]
