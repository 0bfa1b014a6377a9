"""Logging setup shared by every module of the package."""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER_NAME = "i18n_openai_sync"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger living under the package's logger hierarchy."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(level: str | int = "INFO", log_file: Path | None = None) -> logging.Logger:
    """
    Install console (and optionally file) handlers on the package root logger.

    Calling this again only updates levels and adds a file handler if one is
    requested and not yet present, so repeated calls never duplicate output.

    Args:
        level: Level name ('DEBUG', 'INFO', ...) or numeric level
        log_file: Optional path of a log file to append to

    Returns:
        The configured package root logger
    """
    if isinstance(level, str):
        numeric_level = logging.getLevelName(level.upper())
        if not isinstance(numeric_level, int):
            raise ValueError(f"Unknown log level: {level}")
    else:
        numeric_level = level

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(numeric_level)
    formatter = logging.Formatter(LOG_FORMAT)

    has_console = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in logger.handlers
    )
    if not has_console:
        c_handler = logging.StreamHandler()
        c_handler.setFormatter(formatter)
        logger.addHandler(c_handler)

    if log_file is not None:
        has_file = any(isinstance(h, logging.FileHandler) for h in logger.handlers)
        if not has_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            f_handler = logging.FileHandler(log_file, encoding="utf-8")
            f_handler.setLevel(logging.DEBUG)
            f_handler.setFormatter(formatter)
            logger.addHandler(f_handler)

    for handler in logger.handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(numeric_level)

    return logger
