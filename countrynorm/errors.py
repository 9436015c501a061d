"""Domain exceptions for normalization and CLI diagnostics."""

from __future__ import annotations


class NormalizationError(RuntimeError):
    """Raised when a specific normalization stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped normalization error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class ConfigurationError(NormalizationError):
    """Raised for invalid options or missing targets, before any data is mutated."""

    def __init__(self, detail: str, hint: str | None = None) -> None:
        super().__init__(stage="config", detail=detail, hint=hint)


class SourceError(NormalizationError):
    """Raised when a source cannot be read, parsed, written, or connected to."""

    def __init__(self, detail: str, hint: str | None = None) -> None:
        super().__init__(stage="source", detail=detail, hint=hint)


class AmbiguousAliasError(ValueError):
    """Raised when one alias would map to two different country records."""

    def __init__(self, alias: str, first: str, second: str) -> None:
        super().__init__(
            f"Alias `{alias}` maps to both `{first}` and `{second}`."
        )
        self.alias = alias
        self.first = first
        self.second = second
