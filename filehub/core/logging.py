# filehub/core/logging.py
import os
import sys

from loguru import logger

from .config import get_settings


def configure_logging() -> None:
    """Route loguru to stderr at the configured level, plus an optional rotating file."""
    s = get_settings()
    logger.remove()
    logger.add(sys.stderr, level=s.LOG_LEVEL.upper())
    if s.LOG_FILE:
        log_dir = os.path.dirname(os.path.abspath(s.LOG_FILE))
        os.makedirs(log_dir, exist_ok=True)
        logger.add(s.LOG_FILE, level=s.LOG_LEVEL.upper(), rotation="10 MB", retention="10 days")
