"""Logging utilities for MathML Extractor."""
from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler

from core.config import settings


def init_logging() -> None:
    """Initialize logging with console and rotating file handler."""
    log_file = settings.log_file
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logger.setLevel(settings.log_level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    # File handler with UTF-8 encoding so LaTeX payloads log cleanly
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=1_000_000,
        backupCount=3,
        encoding="utf-8",
        errors="replace",
    )
    file_handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(console_handler)
        logger.addHandler(file_handler)


logger = logging.getLogger("mathml_extractor")
