"""Logging configuration for the bridge."""

import logging
import os
import sys
from typing import Optional

LOGGER_NAME = "orbridge"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: Optional[str]) -> int:
    raw = level or os.getenv("ORBRIDGE_LOG_LEVEL") or "INFO"
    resolved = logging.getLevelName(str(raw).strip().upper())
    if isinstance(resolved, int):
        return resolved
    return logging.INFO


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Set up logging with proper handlers and formatters."""
    logger = logging.getLogger(LOGGER_NAME)
    numeric_level = _resolve_level(level)
    logger.setLevel(numeric_level)

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(console_handler)

    # Propagate so pytest's caplog and the root logger still see records
    logger.propagate = True

    return logger


# Global logger instance
logger = setup_logging()
