"""Shared logger used by the server, workers, client and command line."""
import logging
import sys

LOGGER_NAME = "calcnote"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(processName)s | %(message)s"


def setup_logger(level: str = "INFO") -> logging.Logger:
    """
    Configure and return the package logger.

    Calling it again only updates the level, handlers are attached once.

    :param str level: Logging level name (e.g. "INFO", "DEBUG")

    :return: Configured logger
    :rtype: logging.Logger
    """
    log = logging.getLogger(LOGGER_NAME)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
        # Avoid duplicate lines when the root logger is configured too
        log.propagate = False
    log.setLevel(level.upper())
    return log


logger: logging.Logger = setup_logger()
