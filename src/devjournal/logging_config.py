"""Logging setup for the devjournal package."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "devjournal"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stderr handler to the package logger.

    Safe to call repeatedly; later calls only change the level. Logs go to
    stderr because stdout carries the MCP stdio transport.
    """
    logger = logging.getLogger(LOGGER_NAME)
    normalized_level = (level or "INFO").upper()

    if getattr(setup_logging, "_configured", False):
        logger.setLevel(normalized_level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(normalized_level)
    logger.propagate = False

    setup_logging._configured = True
    return logger
