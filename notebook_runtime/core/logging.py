"""Logging setup for the runtime."""
import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach a single stream handler to the package logger.

    Safe to call more than once; the handler is only added the first time.
    """
    from .config import settings

    logger = logging.getLogger("notebook_runtime")
    logger.setLevel(level or settings.LOG_LEVEL)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
