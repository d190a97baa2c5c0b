"""
Loguru sink configuration

Usage:
    from src.utils.logging_setup import setup_logging
    setup_logging()
"""

import sys
from typing import Optional

from loguru import logger

from src.config import Settings, get_settings


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Replace loguru's default sink with stderr + rotating file sinks from Settings"""
    settings = settings or get_settings()
    level = "DEBUG" if settings.DEBUG else settings.LOG_LEVEL.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=settings.LOG_FORMAT, colorize=True)

    if settings.LOG_FILE_PATH and not settings.TESTING:
        logger.add(
            settings.LOG_FILE_PATH,
            level=level,
            format=settings.LOG_FORMAT,
            rotation=settings.LOG_ROTATION,
            retention=settings.LOG_RETENTION,
            encoding="utf-8",
            enqueue=True,
        )

    logger.debug(f"Logging configured (level={level}, file={settings.LOG_FILE_PATH or '-'})")
