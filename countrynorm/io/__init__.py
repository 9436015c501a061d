"""Input/output helpers for countrynorm.

This package contains the atomic file replacement used by file adapters.
"""

from .atomic import KeepOriginal, atomic_replace

__all__ = ["KeepOriginal", "atomic_replace"]
