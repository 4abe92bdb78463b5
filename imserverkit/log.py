"""Process-wide logger writing to the console and a size-rotated file."""

from __future__ import annotations

import logging
import os
import sys
import time
from enum import IntEnum
from logging.handlers import RotatingFileHandler
from typing import Optional


class LogLevel(IntEnum):
    """Severity levels, lowest first."""

    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    CRITICAL = 5
    OFF = 6


TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")

_TO_LOGGING = {
    LogLevel.TRACE: TRACE_LEVEL,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
    LogLevel.OFF: logging.CRITICAL + 10,
}

_LEVEL_NAMES = {
    TRACE_LEVEL: "trace",
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "critical",
}

_logger: Optional[logging.Logger] = None


class _KeyValueFormatter(logging.Formatter):
    """Formats records as ``time=... level=... thread=... msg=...``."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = time.strftime("%Y-%m-%dT%H:%M:%S", time.localtime(record.created))
        level = _LEVEL_NAMES.get(record.levelno, record.levelname.lower())
        line = (
            f"time={stamp}.{int(record.msecs):03d} level={level} "
            f"thread={record.thread} msg={record.getMessage()}"
        )
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _to_logging_level(level: int) -> int:
    return _TO_LOGGING[LogLevel(level)]


def init_logging(
    log_name: str = "server",
    log_path: str | os.PathLike[str] = "logs/server.log",
    level: int = LogLevel.INFO,
    max_file_size: int = 100 * 1024 * 1024,
    max_files: int = 3,
) -> logging.Logger:
    """Configure the shared logger and return it.

    Output goes to stdout and to ``log_path``, which rolls over once it
    reaches ``max_file_size`` bytes, keeping ``max_files`` older files.
    Missing parent directories are created. Calling it again replaces the
    previous handlers.
    """
    global _logger
    threshold = _to_logging_level(level)

    parent = os.path.dirname(os.fspath(log_path))
    if parent:
        os.makedirs(parent, exist_ok=True)

    formatter = _KeyValueFormatter()
    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    file_handler = RotatingFileHandler(
        log_path, maxBytes=max_file_size, backupCount=max_files, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)

    logger = logging.getLogger(log_name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.addHandler(console)
    logger.addHandler(file_handler)
    logger.setLevel(threshold)
    logger.propagate = False

    _logger = logger
    return logger


def set_level(level: int) -> None:
    """Change the threshold of the shared logger, if it has been set up."""
    threshold = _to_logging_level(level)
    if _logger is not None:
        _logger.setLevel(threshold)


def get_logger() -> Optional[logging.Logger]:
    """The logger configured by :func:`init_logging`, or ``None`` before that."""
    return _logger