"""Logging setup shared by all libbuild components."""

from __future__ import annotations

import logging
import sys
from typing import Optional

_ROOT_LOGGER_NAME = "libbuild"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
_handler: Optional[logging.Handler] = None


def get_logger(name: str) -> logging.Logger:
    """Get a logger below the ``libbuild`` namespace.

    Parameters
    ----------
    name : str
        Component name, e.g. "Installer". Names already starting with ``libbuild`` are used
        as is.

    Returns
    -------
    logging.Logger
        The component logger.
    """
    if name == _ROOT_LOGGER_NAME or name.startswith(_ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stderr handler to the ``libbuild`` logger and set its level.

    Calling this function again replaces the handler, so it writes to the current
    ``sys.stderr``.

    Parameters
    ----------
    level : str
        One of "DEBUG", "INFO", "WARNING", "ERROR".

    Returns
    -------
    logging.Logger
        The configured root ``libbuild`` logger.

    Raises
    ------
    ValueError
        If the level is not recognized.
    """
    global _handler
    if level.upper() not in _LOG_LEVELS:
        raise ValueError(f"Invalid log_level: {level}")

    logger = logging.getLogger(_ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper()))
    if _handler is not None:
        logger.removeHandler(_handler)
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] %(levelname)s %(name)s: %(message)s", datefmt="%H:%M:%S"
        )
    )
    logger.addHandler(_handler)
    return logger
