"""
Logging setup for the personalization engine.

The engine itself only ever calls ``logger.*``; the host process decides where
logs go by calling configure_logging() once at startup.
"""

from __future__ import annotations

import sys

from loguru import logger

from config import Settings, get_settings

CONSOLE_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(settings: Settings | None = None) -> None:
    """Replace the default loguru sink with the configured ones."""
    settings = settings or get_settings()

    logger.remove()
    logger.add(sys.stderr, level=settings.log_level, format=CONSOLE_FORMAT)

    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention=5,
            enqueue=True,
        )
    logger.debug(f"Logging configured: level={settings.log_level}, file={settings.log_file}")
