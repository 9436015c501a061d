"""Top-level package for countrynorm.

This package normalizes free-text country names and codes in CSV/TSV files,
XML files, and SQLite columns to a canonical representation, rewriting the
source in place. The main programmatic entry points are `CountryResolver` and
`run_normalization`.
"""

__version__ = "0.3.1"

from .driver import run_normalization
from .lookup import CountryResolver, OutputFormat

__all__ = ["CountryResolver", "OutputFormat", "run_normalization", "__version__"]
