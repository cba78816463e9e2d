"""Logging setup for agentrelay."""

from __future__ import annotations

import logging

LOGGER_NAME = "agentrelay"


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Configure the ``agentrelay`` logger with a console handler.

    Safe to call more than once: existing handlers are replaced.

    Args:
        level: Logging level for the package logger

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Clear existing handlers
    logger.handlers = []

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
    return logger
