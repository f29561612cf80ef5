from __future__ import annotations

import re
from datetime import datetime, timezone

from lumo_import.models.processing_result import ProcessingResult
from lumo_import.services.summary import render_summary_line

SUMMARY_RE = re.compile(
    r"^SUMMARY files=(\d+)/(\d+) success=(\d+) failed=(\d+) items=(\d+) "
    r"created=(\d+) updated=(\d+) skipped_files=(\d+) elapsed_sec=([0-9.]+)$"
)


def _result(elapsed: float, **overrides) -> ProcessingResult:
    t = datetime(2025, 1, 1, tzinfo=timezone.utc)
    values = dict(
        success_files=2, failed_files=1, total_items=12, created=10, updated=2,
        skipped_files=1, start_time=t, end_time=t, elapsed_seconds=elapsed,
    )
    values.update(overrides)
    return ProcessingResult(**values)


def test_render_summary_line_format():
    line = render_summary_line(4, _result(2.0))
    assert line == "SUMMARY files=4/4 success=2 failed=1 items=12 created=10 updated=2 skipped_files=1 elapsed_sec=2"
    assert SUMMARY_RE.match(line)


def test_render_summary_elapsed_formatting():
    assert render_summary_line(1, _result(0)).endswith("elapsed_sec=0")
    assert render_summary_line(1, _result(1.23456)).endswith("elapsed_sec=1.235")
    assert render_summary_line(1, _result(0.000123)).endswith("elapsed_sec=0.000123")
    assert "e-" not in render_summary_line(1, _result(0.0000001))
