"""Logging configuration for the marketplace backend."""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from marketplace.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
ROOT_LOGGER = "marketplace"


def configure_logging(level: str | None = None, log_file: str | None = None) -> logging.Logger:
    """Attach console (and optional rotating file) handlers to the package logger.

    Safe to call more than once; handlers are only added the first time.
    """
    level = (level or settings.LOG_LEVEL).upper()
    log_file = log_file or settings.LOG_FILE

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    if not logger.handlers:
        formatter = logging.Formatter(LOG_FORMAT)

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        console_handler.setLevel(level)
        logger.addHandler(console_handler)

        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=1_000_000,
                backupCount=3,
                encoding="utf-8",
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(level)
            logger.addHandler(file_handler)

    return logger
