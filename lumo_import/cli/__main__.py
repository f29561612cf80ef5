from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config, load_header_mapping
from ..db.record_store import InMemoryRecordStore, PostgresRecordStore, RecordStore, RecordStoreError
from ..excel.reader import ParseError
from ..logging.init import get_logger, log_summary, set_debug, setup_logging
from ..models.config_models import DatabaseConfig, NormalizerSettings
from ..models.import_type import ImportType
from ..services.orchestrator import ProcessingError, persist_result, pipeline_options, process_all
from ..services.pipeline import PipelineOptions, import_file, preview_file
from ..services.summary import render_summary_line

"""CLI entrypoint.

Two modes:
- batch (no FILE): load the YAML config, import every matching spreadsheet in
  ``source_directory`` and log a SUMMARY line
- single file (FILE --type TYPE): run the pipeline on one workbook and print
  the ImportResult JSON to stdout

Persistence goes to PostgreSQL when a connection can be made, otherwise to an
in-memory store ("mock mode"). ``DISABLE_DB_CONNECT=1`` forces mock mode.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

INSPECT_ROWS = 3


def _resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Build the connection string.

    Precedence: ``DATABASE_URL`` / ``PGDSN``, then the config ``dsn``, then
    the individual ``PG*`` variables with the config values as fallback.
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


def _connect(db_cfg: DatabaseConfig) -> Any:
    """Open a psycopg2 connection or return None (caller falls back to mock mode)."""
    logger = get_logger()
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
        return None
    try:
        import psycopg2
    except ImportError as e:
        logger.info(f"psycopg2 not available -> fallback to mock mode: {e}")
        return None
    try:
        conn = psycopg2.connect(_resolve_dsn(db_cfg))
    except Exception as e:
        logger.info(f"DB connection failed -> fallback to mock mode: {e}")
        return None
    # explicit BEGIN / COMMIT per file come from the orchestrator
    conn.autocommit = True
    return conn


@contextmanager
def _record_store(db_cfg: DatabaseConfig) -> Iterator[tuple[RecordStore, str]]:
    """Yield ``(store, mode)`` where mode is ``live`` or ``mock``."""
    conn = _connect(db_cfg)
    if conn is None:
        yield InMemoryRecordStore(), "mock"
        return
    cur = conn.cursor()
    try:
        store = PostgresRecordStore(cur)
        store.ensure_table()
        yield store, "live"
    finally:
        try:
            cur.close()
        finally:
            conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv (values in .env win over the process env)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="lumo-import", description="Lumo inventory spreadsheet importer")
    p.add_argument("file", nargs="?", help="Single spreadsheet to import (omit for batch mode)")
    p.add_argument("--type", dest="import_type", help="INVENTORY | CATALOG | PROJECT (single file mode)")
    p.add_argument("--sheet", help="Sheet to read (default: first sheet)")
    p.add_argument("--mapping", help="YAML file with a custom header -> field mapping")
    p.add_argument("--config", help=f"Config YAML (default: {DEFAULT_CONFIG_PATH})")
    p.add_argument("--persist", action="store_true", help="Persist items after a successful import")
    p.add_argument("--inspect", action="store_true", help="Print layout, headers, mapping and first rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _json_default(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=_json_default))


def _single_file_config(args: argparse.Namespace) -> tuple[PipelineOptions, DatabaseConfig, NormalizerSettings]:
    """Config is optional in single file mode; defaults apply when absent."""
    path = Path(args.config) if args.config else DEFAULT_CONFIG_PATH
    if args.config is None and not path.exists():
        return PipelineOptions(), DatabaseConfig(), NormalizerSettings()
    cfg = load_config(path)
    return pipeline_options(cfg), cfg.database, cfg.pricing


def _inspect(args: argparse.Namespace, import_type: ImportType, mapping: dict[str, str] | None,
             options: PipelineOptions) -> int:
    logger = get_logger()
    try:
        preview = preview_file(
            Path(args.file), import_type, sheet_name=args.sheet, header_mapping=mapping, options=options
        )
    except ParseError as e:
        logger.error(f"inspect: {e}")
        return EXIT_PARTIAL_FAILURE
    _print_json({
        "file": Path(args.file).name,
        "sheet": preview.sheet_name,
        "layout": preview.layout.value,
        "headers": preview.headers,
        "mapping": preview.mapping,
        "rows": len(preview.records),
        "sampleRows": preview.records[:INSPECT_ROWS],
    })
    return EXIT_SUCCESS_ALL


def _run_single_file(args: argparse.Namespace) -> int:
    logger = get_logger()
    if not args.import_type:
        logger.error("--type is required when a FILE is given")
        return EXIT_FATAL
    try:
        import_type = ImportType.parse(args.import_type)
    except ValueError as e:
        logger.error(str(e))
        return EXIT_FATAL
    file_path = Path(args.file)
    if not file_path.exists():
        logger.error(f"file not found: {file_path}")
        return EXIT_FATAL

    try:
        options, db_cfg, pricing = _single_file_config(args)
        mapping = load_header_mapping(Path(args.mapping)) if args.mapping else None
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.inspect:
        return _inspect(args, import_type, mapping, options)

    result = import_file(file_path, import_type, sheet_name=args.sheet, header_mapping=mapping, options=options)
    payload = result.to_dict()
    exit_code = EXIT_SUCCESS_ALL if result.success else EXIT_PARTIAL_FAILURE

    if result.success and args.persist:
        try:
            with _record_store(db_cfg) as (store, mode):
                outcome = persist_result(store, import_type, result, pricing.default_project_category)
        except RecordStoreError as e:
            logger.error(f"persistence: {e}")
            return EXIT_FATAL
        logger.info(
            f"mode={mode} created={outcome.created} updated={outcome.updated} failed={outcome.failed}"
        )
        payload["persisted"] = outcome.to_dict()
        if outcome.failed:
            exit_code = EXIT_PARTIAL_FAILURE

    _print_json(payload)
    return exit_code


def _run_batch(args: argparse.Namespace) -> int:
    logger = get_logger()
    config_path = Path(args.config) if args.config else DEFAULT_CONFIG_PATH
    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    directory = Path(cfg.source_directory)
    if not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    logger.info(f"Processing files from: {directory}")

    try:
        with _record_store(cfg.database) as (store, mode):
            result = process_all(cfg, store)
    except (ProcessingError, RecordStoreError) as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    logger.info(f"mode={mode} total_items={result.total_items}")

    total_files = result.success_files + result.failed_files + result.skipped_files
    summary_line = render_summary_line(total_files, result)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None means "read sys.argv"; an explicit [] must not pick up pytest's args
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    # .env first so DB connection parameters take precedence
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    if args.file:
        return _run_single_file(args)
    if args.inspect:
        logger.error("--inspect needs a FILE and --type")
        return EXIT_FATAL
    return _run_batch(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
