"""Logging configuration for seamcarve."""

import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"


def setup_logging(level: Union[str, int] = "INFO", stream=None) -> logging.Logger:
    """Attach a stream handler to the "seamcarve" logger.

    Engine modules log through children of this logger
    ("seamcarve.carving", "seamcarve.worker", ...). Calling this again only
    changes the level.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR) or number.
        stream: Output stream, stdout by default.

    Returns:
        The package logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger("seamcarve")
    package_logger.setLevel(level)

    if not package_logger.handlers:
        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        package_logger.addHandler(handler)

    return package_logger
