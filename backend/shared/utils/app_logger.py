"""
Logging utilities for the sheet context engine

Analyzer modules log through `logging.getLogger(__name__)`. The context
manager takes a handler-backed logger from here so cache rebuilds and
invalidations are visible without any application-level logging setup.
"""

import logging
import sys
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONTEXT_LOGGER_NAMESPACE = "sheet_context"

LevelLike = Optional[Union[str, int]]


def _resolve_level(level: LevelLike, default: int = logging.INFO) -> int:
    if level is None:
        return default
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), default)


def _stdout_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def get_logger(name: str, level: LevelLike = None) -> logging.Logger:
    """
    Get a logger with its own stdout handler.

    A logger that already has handlers is returned unchanged, level included.

    Args:
        name: Logger name (typically __name__)
        level: Optional log level (name or number), INFO by default
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    log_level = _resolve_level(level)
    logger.setLevel(log_level)
    logger.addHandler(_stdout_handler(log_level))

    # Prevent duplicate logs
    logger.propagate = False
    return logger


def configure_logging(level: str = "INFO") -> None:
    """
    Configure the root logger for the analyzer modules.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level = _resolve_level(level)
    logging.root.setLevel(log_level)
    if not logging.root.handlers:
        logging.root.addHandler(_stdout_handler(log_level))


def get_context_logger(name: str = "context", level: LevelLike = None) -> logging.Logger:
    """Handler-backed logger under the sheet_context namespace."""
    return get_logger(f"{CONTEXT_LOGGER_NAMESPACE}.{name}", level)


def set_context_log_level(level: LevelLike) -> int:
    """
    Apply a level to every existing sheet_context logger and its handlers,
    e.g. after reload_settings() changed `context.log_level`.

    Returns:
        The numeric level applied
    """
    log_level = _resolve_level(level)
    prefix = f"{CONTEXT_LOGGER_NAMESPACE}."
    for name, logger in list(logging.root.manager.loggerDict.items()):
        if not isinstance(logger, logging.Logger):
            continue
        if name != CONTEXT_LOGGER_NAMESPACE and not name.startswith(prefix):
            continue
        logger.setLevel(log_level)
        for handler in logger.handlers:
            handler.setLevel(log_level)
    return log_level
