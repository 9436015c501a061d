"""Shared parsing helpers for option values and lookup keys."""

from __future__ import annotations

from .errors import ConfigurationError


_TRUE_BOOLEAN_TOKENS = frozenset({"1", "true", "yes", "on"})
_FALSE_BOOLEAN_TOKENS = frozenset({"0", "false", "no", "off"})


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def normalize_lookup_key(value: str) -> str:
    """Return the case- and whitespace-insensitive key used for alias lookup."""

    return " ".join(value.split()).casefold()


def parse_permissive_boolean(value: object) -> bool | None:
    """Parse a permissive boolean token and return `None` for invalid values."""

    if isinstance(value, bool):
        return value

    normalized = normalize_optional_string(value)
    if normalized is None:
        return None

    token = normalized.lower()
    if token in _TRUE_BOOLEAN_TOKENS:
        return True
    if token in _FALSE_BOOLEAN_TOKENS:
        return False
    return None


def parse_table_column(reference: str) -> tuple[str, str]:
    """Split a `table.column` reference into its two components.

    The split happens on the last dot, so a table name that itself contains
    dots stays intact.

    Raises:
        ConfigurationError: If either component is missing or blank.
    """

    text = normalize_optional_string(reference)
    if text is None or "." not in text:
        raise ConfigurationError(
            f"Invalid column reference `{reference}`: expected `table.column`.",
            hint="Pass `--location <table>.<column>`.",
        )
    table, _, column = text.rpartition(".")
    table = table.strip()
    column = column.strip()
    if not table:
        raise ConfigurationError(
            f"Invalid column reference `{reference}`: table name is empty.",
            hint="Pass `--location <table>.<column>`.",
        )
    if not column:
        raise ConfigurationError(
            f"Invalid column reference `{reference}`: column name is empty.",
            hint="Pass `--location <table>.<column>`.",
        )
    return table, column
