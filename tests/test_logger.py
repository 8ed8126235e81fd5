"""Test the shared logger setup."""
import logging

from calcnote.common.logger import LOG_FORMAT, LOGGER_NAME, logger, setup_logger


def _own_handlers():
    # Test runners may attach their own capture handlers, only count ours
    return [
        h for h in logger.handlers
        if type(h) is logging.StreamHandler and h.formatter is not None and h.formatter._fmt == LOG_FORMAT
    ]


def test_logger_has_single_handler() -> None:
    setup_logger("DEBUG")
    setup_logger("INFO")
    assert logger is logging.getLogger(LOGGER_NAME)
    assert len(_own_handlers()) == 1
    assert logger.level == logging.INFO


def test_level_name_is_case_insensitive() -> None:
    assert setup_logger("warning").level == logging.WARNING
    setup_logger("INFO")
