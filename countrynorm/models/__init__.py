"""Shared typed data models for countrynorm.

This package contains dataclasses used across adapter modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import ColumnReport, FileReport, NormalizationOutcome

__all__ = ["ColumnReport", "FileReport", "NormalizationOutcome"]
