"""Shared logger for the CLI, the GUI and the store operations."""

import logging
import threading

LOG_FORMAT = "%(asctime)s | %(levelname)-5s | %(module)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"
LOGGER_NAME = "gpu_preference"

_logger: logging.Logger | None = None
_console: logging.Handler | None = None
_logger_lock = threading.Lock()


def get_logger() -> logging.Logger:
    """Return the package logger, attaching a console handler on first use."""
    global _logger, _console
    if _logger is not None:
        return _logger
    with _logger_lock:
        if _logger is not None:
            return _logger
        logger = logging.getLogger(LOGGER_NAME)
        logger.setLevel(logging.DEBUG)

        _console = logging.StreamHandler()
        _console.setLevel(logging.WARNING)
        _console.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        logger.addHandler(_console)
        _logger = logger
    return _logger


def set_console_level(level: int) -> None:
    get_logger()
    if _console is not None:
        _console.setLevel(level)
