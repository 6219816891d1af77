# degenerate/logging_config.py
"""
Logging configuration for the command-line entry point.

All modules log through `logging.getLogger(__name__)`, under the "degenerate"
namespace. `setup_logging` installs a single stderr handler on that namespace;
calling it again replaces the handler instead of adding a second one. The `verbose`
command raises the namespace to INFO with `set_verbose`.
"""
import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "degenerate"
DEFAULT_FORMAT = "%(levelname)s | %(name)s | %(message)s"

_handler: Optional[logging.Handler] = None
_saved_level: Optional[int] = None


def setup_logging(level: str = "WARNING", fmt: str = DEFAULT_FORMAT) -> logging.Logger:
    """
    Configures the package logger.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        fmt: logging format string

    Returns:
        The package logger

    Raises:
        ValueError: If the level name is unknown
    """
    global _handler, _saved_level
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown logging level: {level}")

    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        logger.removeHandler(_handler)
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(_handler)
    logger.setLevel(numeric)
    _saved_level = None
    return logger


def set_verbose(verbose: bool) -> None:
    """Shows INFO diagnostics of the package, or restores the previous level."""
    global _saved_level
    logger = logging.getLogger(PACKAGE_LOGGER)
    if verbose and _saved_level is None:
        _saved_level = logger.level
        if logger.getEffectiveLevel() > logging.INFO:
            logger.setLevel(logging.INFO)
    elif not verbose and _saved_level is not None:
        logger.setLevel(_saved_level)
        _saved_level = None
