"""Logging configuration for tinylink.

Everything logs below the ``tinylink`` logger: the package's module loggers
(``logging.getLogger(__name__)``) and the web layer (``tinylink.web``).
"""

import json
import logging
import sys
from typing import Optional


ROOT_LOGGER = "tinylink"

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at DEBUG
QUIET_LOGGERS = ("asyncio", "asyncpg", "redis", "httpx", "httpcore")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, safe for messages containing quotes."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _make_handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
) -> logging.Logger:
    """Setup logging configuration.

    Safe to call more than once; handlers from a previous call are replaced.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        json_format: Whether to use JSON format

    Returns:
        The configured ``tinylink`` logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    formatter = JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric_level)
    logger.handlers.clear()
    logger.addHandler(_make_handler(logging.StreamHandler(sys.stdout), numeric_level, formatter))
    if log_file:
        logger.addHandler(_make_handler(logging.FileHandler(log_file), numeric_level, formatter))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    return logger
