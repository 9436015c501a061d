"""Structured run logging utilities.

Responsibilities:
- Emit concise, deterministic per-file and per-column runtime logs.
- Route all lines through `loguru` so sinks and levels are configured once.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger as _loguru_logger


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


class RunLogger:
    """Emit deterministic normalization logs for CLI-observable activity."""

    def __init__(self, sink: TextIO | None = None, level: str = "INFO") -> None:
        """Initialize logger sink and configure deterministic formatting."""

        self._sink = sink or sys.stderr
        _loguru_logger.remove()
        _loguru_logger.add(self._sink, format="{message}", level=level, colorize=False)

    def _emit(self, level: str, event: str, stage: str, **context: object) -> None:
        """Emit one structured runtime log line."""

        line = f"[normalize] level={level} stage={stage} event={event}{_format_context(context)}"
        _loguru_logger.log(level, line)

    def log_source_start(self, stage: str, source: object) -> None:
        """Emit a source-start runtime event."""

        self._emit("INFO", "start", stage, source=source)

    def log_source_complete(self, stage: str, source: object, **counts: int) -> None:
        """Emit a source-complete runtime event with change counters."""

        self._emit("INFO", "complete", stage, source=source, **counts)

    def log_unresolved(self, stage: str, source: object, value: str) -> None:
        """Emit a debug event for a value that matched no country record."""

        self._emit("DEBUG", "unresolved", stage, source=source, value=value)

    def log_failure(self, stage: str, error_type: str) -> None:
        """Emit a failure runtime event without payload details."""

        self._emit("ERROR", "failure", stage, error_type=error_type)
