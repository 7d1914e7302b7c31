"""
Logging configuration.

The compiler never configures the root logger or relies on a process-wide
logger: make_logger builds the handle for one run and callers pass it to
the components that log.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def make_logger(verbose: bool = False, stream: TextIO | None = None, name: str = "gqlc") -> logging.Logger:
    """
    Configure and return the compiler logger.

    Args:
        verbose: Log progress at INFO level; otherwise only warnings and errors
        stream: Where to write log records (stderr by default)
        name: Logger name

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    level = logging.INFO if verbose else logging.WARNING
    logger.setLevel(level)

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)

    # Prevent propagation to root logger
    logger.propagate = False
    return logger


def get_logger(parent: logging.Logger, name: str) -> logging.Logger:
    """Return a child of the given logger, e.g. gqlc.compiler."""
    return parent.getChild(name)
