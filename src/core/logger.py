import logging
import sys
from typing import Optional

from src.config import get_settings

_loggers = {}

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Get or create a logger; the level defaults to ``QUERYKIT_LOG_LEVEL``."""
    if name not in _loggers:
        logger = logging.getLogger(name)
        logger.setLevel((level or get_settings().log_level).upper())

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        _loggers[name] = logger

    return _loggers[name]
