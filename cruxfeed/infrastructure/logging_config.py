"""
structlog setup.

Library code only calls structlog.get_logger(__name__); applications
(and scripts) call configure_logging() once at startup.
"""

import logging
import sys
from typing import Optional

import structlog

from cruxfeed.infrastructure.config import get_log_level


def configure_logging(level: Optional[str] = None, json: bool = False) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name, defaults to LOG_LEVEL env var (INFO)
        json: Render JSON lines instead of the console renderer

    Example:
        >>> configure_logging("DEBUG")
        >>> structlog.get_logger("cruxfeed").info("ready", backend="inmemory")
    """
    level_name = (level or get_log_level()).upper()
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level_name}")

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    renderer = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )
