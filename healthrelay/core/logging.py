from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name} | {message}"


def configure_logging(level: str = "INFO") -> None:
    """Route loguru output to stderr with the service's standard format."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
