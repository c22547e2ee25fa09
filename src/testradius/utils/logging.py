"""Logging setup for testradius: stderr records under the `testradius` logger tree."""

import logging
import os
import sys
from typing import Optional, Union

LOG_LEVEL_ENV = "TESTRADIUS_LOG_LEVEL"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def resolve_level(level: Union[int, str]) -> int:
    """
    Numeric logging level from a number or a case-insensitive level name.

    Raises:
        ValueError: If a name is not one of LOG_LEVELS
    """
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name not in LOG_LEVELS:
        raise ValueError(f"Unknown log level '{level}'; expected one of {', '.join(LOG_LEVELS)}")
    return getattr(logging, name)


def setup_logging(level: Union[int, str, None] = None, format_string: Optional[str] = None) -> logging.Logger:
    """
    Set up structured logging for testradius.

    Calling it again only changes the level of the `testradius` logger,
    so the CLI can override the level chosen at import time.

    Args:
        level: Level number or name; defaults to TESTRADIUS_LOG_LEVEL, then INFO.
            An unknown name in the environment is reported and ignored.
        format_string: Custom format string (optional)

    Returns:
        The `testradius` logger

    Raises:
        ValueError: If an explicit level name is unknown
    """
    ignored_env = None
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV) or logging.INFO
        if isinstance(level, str) and level.strip().upper() not in LOG_LEVELS:
            ignored_env, level = level, logging.INFO
    resolved = resolve_level(level)

    logging.basicConfig(
        level=resolved,
        format=format_string or _FORMAT,
        stream=sys.stderr,
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    logger = logging.getLogger("testradius")
    logger.setLevel(resolved)
    if ignored_env is not None:
        logger.warning(f"Ignoring {LOG_LEVEL_ENV}={ignored_env!r}; expected one of {', '.join(LOG_LEVELS)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module."""
    return logging.getLogger(f"testradius.{name}")
