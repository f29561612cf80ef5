from __future__ import annotations

from ..models.processing_result import ProcessingResult

"""Summary line rendering for batch imports."""

__all__ = [
    "render_summary_line",
]


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line for a batch run.

    Format::

        SUMMARY files={total}/{total} success={success} failed={failed} items={items}
        created={created} updated={updated} skipped_files={skipped} elapsed_sec={elapsed}

    (one line, single spaces).

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2025, 1, 1, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0, total_items=3, created=2, updated=1,
        ...     skipped_files=0, start_time=t, end_time=t, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(1, result)
        'SUMMARY files=1/1 success=1 failed=0 items=3 created=2 updated=1 skipped_files=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"items={result.total_items} "
        f"created={result.created} "
        f"updated={result.updated} "
        f"skipped_files={result.skipped_files} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
