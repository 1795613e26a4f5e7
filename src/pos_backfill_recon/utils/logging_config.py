"""Logging configuration for the backfill tool."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

from .exceptions import ConfigurationError

LOGGER_NAME = "pos_backfill_recon"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def resolve_level(level: Union[int, str]) -> int:
    """
    Turn a level name from configuration (``"info"``, ``"DEBUG"``) into a number.

    Raises:
        ConfigurationError: If the name is not a logging level
    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if not isinstance(resolved, int):
        raise ConfigurationError(f"Unknown log level: {level}")
    return resolved


def _file_handler(log_file: Path) -> logging.Handler:
    # Files always get everything, with source locations
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    log_format: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the application logger.

    Calling this again replaces the previous handlers, so a CLI command can
    reconfigure after loading its YAML settings.

    Args:
        level: Console level, as a number or a level name
        log_file: Optional path of a rotating log file
        log_format: Console format string (default: time, logger, level, message)

    Returns:
        The configured ``pos_backfill_recon`` logger
    """
    console_level = resolve_level(level)

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(log_format or DEFAULT_FORMAT))
    logger.addHandler(console)

    if log_file:
        logger.addHandler(_file_handler(Path(log_file)))
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(console_level)

    return logger
