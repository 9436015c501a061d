"""Unit tests for structured run logging."""

from __future__ import annotations

import io

from countrynorm.telemetry import RunLogger


def test_run_logger_emits_deterministic_lines() -> None:
    """Context keys are sorted and values sanitized into shell-safe tokens."""

    sink = io.StringIO()
    run_logger = RunLogger(sink=sink)

    run_logger.log_source_start("csv", "data/people list.csv")
    run_logger.log_source_complete("csv", "data/people.csv", unresolved=1, matched=3, changed=2)
    run_logger.log_failure("xml", "SourceError")

    assert sink.getvalue().splitlines() == [
        "[normalize] level=INFO stage=csv event=start source=data/people_list.csv",
        "[normalize] level=INFO stage=csv event=complete changed=2 matched=3 "
        "source=data/people.csv unresolved=1",
        "[normalize] level=ERROR stage=xml event=failure error_type=SourceError",
    ]


def test_unresolved_values_are_debug_only() -> None:
    """Unresolved-value events appear only when the DEBUG level is enabled."""

    quiet_sink = io.StringIO()
    RunLogger(sink=quiet_sink).log_unresolved("db", "country", "Atlantis")
    assert quiet_sink.getvalue() == ""

    verbose_sink = io.StringIO()
    RunLogger(sink=verbose_sink, level="DEBUG").log_unresolved("db", "country", "")
    assert verbose_sink.getvalue() == (
        "[normalize] level=DEBUG stage=db event=unresolved source=country value=none\n"
    )
