from __future__ import annotations

import logging
from io import StringIO

from lumo_import.logging.init import (
    LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    reset_logging,
    set_debug,
    setup_logging,
)


def _capture(logger: logging.Logger) -> StringIO:
    buf = StringIO()
    for h in logger.handlers[:]:
        logger.removeHandler(h)
    handler = logging.StreamHandler(buf)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    return buf


def test_setup_logging_creates_logger_with_labeled_formatter():
    logger = setup_logging()
    assert logger.name == LOGGER_NAME == "lumo_import"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, LabeledFormatter)
    assert logger.propagate is False


def test_logging_labeled_prefixes():
    logger = setup_logging()
    buf = _capture(logger)
    logger.info("Test info message")
    logger.warning("Test warning message")
    logger.error("Test error message")
    logger.log(SUMMARY_LEVEL, "Test summary message")
    assert buf.getvalue().strip().split("\n") == [
        "INFO Test info message",
        "WARN Test warning message",
        "ERROR Test error message",
        "SUMMARY Test summary message",
    ]


def test_module_loggers_share_the_application_handler():
    logger = setup_logging()
    buf = _capture(logger)
    logging.getLogger("lumo_import.services.pipeline").info("from a library module")
    assert buf.getvalue().strip() == "INFO from a library module"


def test_get_logger_returns_configured_logger():
    setup_logger = setup_logging()
    assert get_logger() is setup_logger


def test_setup_logging_idempotent():
    logger1 = setup_logging()
    logger2 = setup_logging()
    assert logger1 is logger2
    assert len(logger1.handlers) == 1


def test_log_summary_convenience_function():
    logger = setup_logging()
    buf = _capture(logger)
    log_summary("files=1/1 success=1 failed=0 items=3 created=3 updated=0 skipped_files=0 elapsed_sec=0.5")
    assert buf.getvalue().strip() == (
        "SUMMARY files=1/1 success=1 failed=0 items=3 created=3 updated=0 skipped_files=0 elapsed_sec=0.5"
    )
    assert logging.getLevelName(SUMMARY_LEVEL) == "SUMMARY"


def test_set_debug_lowers_levels():
    logger = setup_logging()
    set_debug(logger)
    assert logger.level == logging.DEBUG
    assert all(h.level == logging.DEBUG for h in logger.handlers)


def test_reset_logging_removes_handlers():
    logger = setup_logging()
    reset_logging()
    assert logger.handlers == []
    assert logger.propagate is True
    assert setup_logging() is logger
