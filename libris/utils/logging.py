# libris/utils/logging.py
import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_ROOT_LOGGER = "libris"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a stream handler to the package logger once and set its level.

    Args:
        level: Level name such as "DEBUG" or "INFO". Defaults to WARNING.

    Returns:
        The package root logger
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, (level or "WARNING").upper(), logging.WARNING))
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child of the package logger"""
    if not name.startswith(_ROOT_LOGGER):
        name = f"{_ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
