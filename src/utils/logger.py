"""
Logging utilities for the token service.
"""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Global dict to store loggers
_loggers: dict[str, logging.Logger] = {}


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Get or create a logger with the given name.

    Args:
        name: Logger name, typically __name__
        level: Logging level

    Returns:
        Configured logger
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(console_handler)

    _loggers[name] = logger
    return logger


def set_log_level(level: str | int) -> None:
    """Apply a level to every logger created through get_logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    for logger in _loggers.values():
        logger.setLevel(level)


def setup_file_logging(filename: str = "logs/token_service.log", level: int = logging.INFO) -> None:
    """Set up file logging for all loggers.

    Args:
        filename: Log file path; parent directories are created
        level: Logging level for file handler
    """
    Path(filename).parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(filename)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logging.getLogger().addHandler(file_handler)
