"""Logging utilities for gridlearn.

Every module obtains its logger through :func:`get_logger`, so all output
shares one namespace, one format and one level switch. Settings made with
:func:`configure_logging` also apply to loggers created afterwards.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional

_ROOT = "gridlearn"
_DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"

_level = logging.WARNING
_format = _DEFAULT_FORMAT
_stream: Optional[IO[str]] = None

_loggers: dict[str, logging.Logger] = {}


def _coerce_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.WARNING)
    return level


def _attach_handler(logger: logging.Logger) -> None:
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    # sys.stderr is looked up here so redirected stderr is honoured
    handler = logging.StreamHandler(_stream if _stream is not None else sys.stderr)
    handler.setLevel(_level)
    handler.setFormatter(logging.Formatter(_format))
    logger.addHandler(handler)
    logger.setLevel(_level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get or create the logger of a gridlearn module.

    Names outside the package are prefixed with ``gridlearn.``. Loggers are
    cached, write to the configured stream (stderr by default) and do not
    propagate to the root logger.

    Args:
        name: Module name, usually ``__name__``. If None, returns the package
            logger.

    Returns:
        Configured logger instance.

    Example:
        >>> from gridlearn.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.debug("Rebalancing state %d", 3)
    """
    if name is None:
        name = _ROOT
    logger_name = name if name.startswith(_ROOT) else f"{_ROOT}.{name}"

    logger = _loggers.get(logger_name)
    if logger is None:
        logger = logging.getLogger(logger_name)
        if not logger.handlers:
            _attach_handler(logger)
        logger.propagate = False
        _loggers[logger_name] = logger
    return logger


def set_log_level(level: int | str) -> None:
    """Set the level of every gridlearn logger, present and future.

    Args:
        level: ``logging`` level constant or its name ('DEBUG', 'INFO', ...).
    """
    global _level
    _level = _coerce_level(level)
    for logger in _loggers.values():
        logger.setLevel(_level)
        for handler in logger.handlers:
            handler.setLevel(_level)


def configure_logging(
    level: int | str = logging.WARNING,
    format_string: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> None:
    """Route gridlearn logging to ``stream`` with the given level and format.

    Replaces the handler of every cached logger and records the settings for
    loggers created later. Calling it with no arguments restores the
    defaults (WARNING, stderr, ``[LEVEL] name: message``).

    Args:
        level: Logging level (default: WARNING).
        format_string: Custom format string. If None, uses the default.
        stream: Output stream. If None, writes to sys.stderr.

    Example:
        >>> import logging
        >>> from gridlearn.logging import configure_logging
        >>> configure_logging(level=logging.INFO)
        >>> configure_logging()
    """
    global _level, _format, _stream
    _level = _coerce_level(level)
    _format = format_string if format_string is not None else _DEFAULT_FORMAT
    _stream = stream
    for logger in _loggers.values():
        _attach_handler(logger)
