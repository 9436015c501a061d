"""Source adapters that rewrite country values in place.

Each adapter locates values in one kind of source (delimited text, XML, or a
SQLite column), resolves them through a shared `CountryResolver`, and writes
resolved outputs back.
"""

from .batch import NullProgress, ProgressListener, iter_source_files, run_batch
from .delimited import DelimitedTextAdapter
from .markup import AttributeValue, ElementText, MarkupAdapter, MarkupPath
from .relational import RelationalAdapter

__all__ = [
    "AttributeValue",
    "DelimitedTextAdapter",
    "ElementText",
    "MarkupAdapter",
    "MarkupPath",
    "NullProgress",
    "ProgressListener",
    "RelationalAdapter",
    "iter_source_files",
    "run_batch",
]
