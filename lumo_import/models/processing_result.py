from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Processing result models for batch spreadsheet imports.

FileStat is recorded per file; ProcessingResult aggregates a whole batch run
and feeds the SUMMARY line.
"""

__all__ = [
    "FileStat",
    "ProcessingResult",
]


@dataclass(frozen=True)
class FileStat:
    """Per-file processing statistics."""
    file_name: str
    import_type: str | None  # None when the file was skipped
    status: str  # success / failed / skipped
    items: int  # normalized items (0 on failure)
    elapsed_seconds: float
    created: int = 0
    updated: int = 0
    persist_failed: int = 0


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results of a batch run."""
    success_files: int
    failed_files: int
    total_items: int
    created: int
    updated: int
    skipped_files: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None
    error_log_path: str | None = None

    @property
    def has_failures(self) -> bool:
        return self.failed_files > 0
