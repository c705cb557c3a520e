# Logging configuration: stdout plus a size-bounded log file

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 5 * 1024 * 1024

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def parse_level(level: str) -> int:
    if level.lower() not in LOG_LEVELS:
        raise ValueError(f'Invalid log level: {level}. Must be one of: {", ".join(LOG_LEVELS)}')
    return LOG_LEVELS[level.lower()]


def setup_logging(log_file: str | None, level: str = "info") -> None:
    """Log to stdout and, when a path is given, to a size-bounded file."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handlers.insert(0, RotatingFileHandler(log_file, maxBytes=MAX_LOG_BYTES, backupCount=3, encoding="utf-8"))

    logging.basicConfig(
        level=parse_level(level),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
