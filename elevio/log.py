"""Loguru sink setup. Library code only logs; applications call configure_logging."""

import sys
from typing import Optional

from loguru import logger

from .config import Settings

LOG_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"


def configure_logging(level: str = "INFO", sink=sys.stderr) -> int:
    """Replace loguru's default handler with a single sink. Returns the handler id."""
    logger.remove()
    return logger.add(sink, level=level, format=LOG_FORMAT)


def configure_logging_from_settings(settings: Optional[Settings] = None, sink=sys.stderr) -> int:
    """configure_logging at ELEVIO_LOG_LEVEL (read from the environment when no settings given)."""
    settings = settings or Settings.from_env()
    return configure_logging(settings.log_level, sink=sink)
