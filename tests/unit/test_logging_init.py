from __future__ import annotations

import logging

from moovly_import.logging.init import (
    LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    set_debug,
    setup_logging,
)


def test_setup_logging_is_idempotent():
    logger = setup_logging()
    assert logger.name == LOGGER_NAME
    assert logger.level == logging.INFO
    assert setup_logging() is logger
    assert len(logger.handlers) == 1
    assert logger.propagate is False


def test_labeled_prefixes(capsys):
    logger = setup_logging()
    logger.info("hello")
    logger.warning("careful")
    logger.error("broken")
    log_summary("files=0/0")
    out = capsys.readouterr().out.splitlines()
    assert out == ["INFO hello", "WARN careful", "ERROR broken", "SUMMARY files=0/0"]


def test_module_loggers_share_handler(capsys):
    setup_logging()
    logging.getLogger(f"{LOGGER_NAME}.services.orchestrator").info("file=a.xlsx")
    assert capsys.readouterr().out == "INFO file=a.xlsx\n"


def test_debug_toggle(capsys):
    logger = get_logger()
    logger.debug("hidden")
    set_debug(True)
    logger.debug("shown")
    set_debug(False)
    assert capsys.readouterr().out == "DEBUG shown\n"


def test_formatter_unknown_level_uses_level_name():
    record = logging.LogRecord("x", 15, __file__, 1, "msg", None, None)
    record.levelname = "Level 15"
    assert LabeledFormatter().format(record) == "Level 15 msg"
    summary = logging.LogRecord("x", SUMMARY_LEVEL, __file__, 1, "done", None, None)
    assert LabeledFormatter().format(summary) == "SUMMARY done"
