"""Logging configuration for protogen.

Output goes to stdout so it interleaves with the rich console output. Set
LOG_FORMAT=json to get one JSON object per line instead of plain text, which
is easier to ingest from CI log collectors.
"""

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Dict

LOGGER_NAME = "protogen"

TEXT_FORMAT = "[%(asctime)s] %(levelname)s - %(name)s - %(message)s"


def setup_logging(level: str = "INFO", structured: bool = False) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        structured: Whether to use structured JSON logging

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper()))

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))
    handler.setFormatter(StructuredFormatter() if structured else logging.Formatter(TEXT_FORMAT, "%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)

    return logger


def set_log_level(level: str) -> None:
    """
    Change the level of the protogen logger and its handlers.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
    """
    numeric_level = getattr(logging, level.upper())
    logger.setLevel(numeric_level)
    for handler in logger.handlers:
        handler.setLevel(numeric_level)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


def _structured_from_env() -> bool:
    return os.getenv("LOG_FORMAT", "text").strip().lower() == "json"


# Global logger instance
logger = setup_logging(structured=_structured_from_env())
