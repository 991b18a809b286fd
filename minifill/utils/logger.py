"""Logging utilities for the fill engine."""

from __future__ import annotations

import logging
from typing import Optional


ROOT_LOGGER_NAME = "minifill"


def configure_logging(level: int = logging.INFO) -> None:
    """Attach a single stream handler to the package logger.

    The engine is embedded in request handlers, so only the ``minifill``
    namespace is configured and the host's root logger is left alone.
    """

    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a namespaced logger below ``minifill``."""

    if not name or name == "__main__":
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
