from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..db.persist import PersistOutcome, persist_items
from ..db.record_store import RecordStore
from ..logging.error_log import ErrorLogBuffer, ErrorRecord, records_from_messages
from ..mapping.header_mapper import DEFAULT_TABLE
from ..models.config_models import ImportConfig, ImportRule
from ..models.import_result import ImportResult
from ..models.import_type import ImportType
from ..models.processing_result import FileStat, ProcessingResult
from .pipeline import PipelineOptions, import_file
from .progress import ProgressTracker

"""Batch orchestration for spreadsheet imports.

Scans the configured directory, picks an import type per file from the
``imports`` rules, runs each file through the pipeline, optionally persists
the items, and aggregates the counters for the SUMMARY line.

Each file is its own unit of work: when the store is backed by a database
cursor, the file runs inside BEGIN / COMMIT and is rolled back on failure.
A failing file is recorded in the error log and processing continues.
"""

__all__ = [
    "ProcessingError",
    "SPREADSHEET_SUFFIXES",
    "pipeline_options",
    "persist_result",
    "scan_spreadsheet_files",
    "process_all",
]

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = (".xlsx", ".xls")
FILE_LEVEL = "<FILE_LEVEL>"
FIRST_SHEET = "<FIRST_SHEET>"


class ProcessingError(Exception):
    """Fatal error that stops a batch run."""
    pass


def pipeline_options(config: ImportConfig) -> PipelineOptions:
    patterns = DEFAULT_TABLE.extended(config.header_patterns) if config.header_patterns else DEFAULT_TABLE
    return PipelineOptions(
        settings=config.pricing,
        patterns=patterns,
        detect_title_row=config.detect_title_row,
    )


def scan_spreadsheet_files(directory: Path) -> list[Path]:
    """Scan directory for .xlsx / .xls files (non-recursive, sorted by name).

    Raises:
        ProcessingError: If directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")

    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")

    try:
        return sorted(
            p
            for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in SPREADSHEET_SUFFIXES and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def _cursor_of(store: RecordStore | None) -> Any:
    return getattr(store, "cursor", None)


def _run_sql(cursor: Any, statement: str) -> None:
    if cursor is not None:
        cursor.execute(statement)


def persist_result(
    store: RecordStore,
    import_type: ImportType,
    result: ImportResult,
    default_category: str = "GENERAL",
) -> PersistOutcome:
    """Persist a successful ImportResult as one transaction.

    With a cursor-backed store, any failed item rolls back the whole file.
    The in-memory store has no transactions; its writes stay.
    """
    cursor = _cursor_of(store)
    _run_sql(cursor, "BEGIN")
    try:
        outcome = persist_items(
            store,
            import_type,
            result.items,
            project=result.project,
            default_category=default_category,
        )
    except Exception:
        _run_sql(cursor, "ROLLBACK")
        raise
    _run_sql(cursor, "ROLLBACK" if outcome.failed else "COMMIT")
    return outcome


def _process_single_file(
    file_path: Path,
    rule: ImportRule,
    config: ImportConfig,
    options: PipelineOptions,
    store: RecordStore | None,
    error_log: ErrorLogBuffer,
) -> FileStat:
    start = datetime.now(UTC)
    sheet = rule.sheet or FIRST_SHEET

    def _stat(status: str, items: int = 0, outcome: PersistOutcome | None = None) -> FileStat:
        outcome = outcome or PersistOutcome()
        return FileStat(
            file_name=file_path.name,
            import_type=rule.import_type.value,
            status=status,
            items=items,
            elapsed_seconds=(datetime.now(UTC) - start).total_seconds(),
            created=outcome.created,
            updated=outcome.updated,
            persist_failed=outcome.failed,
        )

    result = import_file(file_path, rule.import_type, sheet_name=rule.sheet, options=options)
    if not result.success:
        row_level = all(e.startswith("Row ") for e in result.errors)
        error_type = "VALIDATION_ERROR" if row_level else "PARSE_ERROR"
        error_log.extend(
            records_from_messages(file_path.name, sheet if row_level else FILE_LEVEL, error_type, result.errors)
        )
        logger.warning("file=%s failed errors=%d first=%s", file_path.name, len(result.errors), result.errors[0])
        return _stat("failed")

    if store is None:
        return _stat("success", len(result.items))

    try:
        outcome = persist_result(store, rule.import_type, result, config.pricing.default_project_category)
        if outcome.failed:
            error_log.extend(records_from_messages(file_path.name, sheet, "PERSIST_ERROR", outcome.errors))
            logger.warning("file=%s persistence failed items=%d (rolled back)", file_path.name, outcome.failed)
            return _stat("failed", 0, PersistOutcome(failed=outcome.failed))
    except Exception as e:
        error_log.append(ErrorRecord.create(file_path.name, FILE_LEVEL, -1, "PROCESSING_ERROR", str(e)))
        logger.error("file=%s processing error: %s", file_path.name, e)
        return _stat("failed")

    return _stat("success", len(result.items), outcome)


def process_all(
    config: ImportConfig,
    store: RecordStore | None = None,
    *,
    logs_dir: Path | None = None,
) -> ProcessingResult:
    """Import every matching spreadsheet in ``config.source_directory``.

    Args:
        config: batch configuration (directory, type rules, pricing)
        store: persistence target; None imports without persisting
        logs_dir: where the JSON Lines error log goes (default ``./logs``)

    Returns:
        ProcessingResult with aggregated counters and per-file stats

    Raises:
        ProcessingError: the source directory is missing or unreadable
    """
    start_time = datetime.now(UTC)
    error_log = ErrorLogBuffer(logs_dir)
    options = pipeline_options(config)

    file_paths = scan_spreadsheet_files(Path(config.source_directory))

    file_stats: list[FileStat] = []
    planned: list[tuple[Path, ImportRule]] = []
    for path in file_paths:
        rule = config.rule_for(path.name)
        if rule is None:
            logger.info("file=%s skipped (no import rule matches)", path.name)
            file_stats.append(FileStat(path.name, None, "skipped", 0, 0.0))
            continue
        planned.append((path, rule))

    with ProgressTracker(len(planned)) as progress:
        for path, rule in planned:
            progress.start_file(path)
            stat = _process_single_file(path, rule, config, options, store, error_log)
            file_stats.append(stat)
            progress.finish_file(items=stat.items, success=stat.status == "success")

    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.error("failed to write error log: %s", e)
        log_path = None
    if log_path is not None:
        logger.warning("errors written to %s", log_path)

    end_time = datetime.now(UTC)
    done = [s for s in file_stats if s.status == "success"]
    return ProcessingResult(
        success_files=len(done),
        failed_files=sum(1 for s in file_stats if s.status == "failed"),
        total_items=sum(s.items for s in done),
        created=sum(s.created for s in done),
        updated=sum(s.updated for s in done),
        skipped_files=sum(1 for s in file_stats if s.status == "skipped"),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
        error_log_path=str(log_path) if log_path is not None else None,
    )
