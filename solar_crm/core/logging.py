"""Logging configuration."""

import logging
import sys

from solar_crm.core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance."""

    settings = get_settings()
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    if settings.debug:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    return logger
