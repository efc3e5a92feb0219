"""
Logging setup for the crystal package.

Every module logs through a child of the ``crystal`` logger so that one call
to ``setup_logging`` configures the whole engine.
"""

from __future__ import annotations

import logging
import sys
import time
from contextlib import contextmanager
from pathlib import Path

ROOT_LOGGER = "crystal"

_FORMATS = {
    "simple": "%(levelname)s: %(message)s",
    "detailed": "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
    "json": '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}',
}


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    format_style: str = "detailed",
) -> logging.Logger:
    """
    Configure the ``crystal`` logger with a stdout handler and an optional
    file handler. Calling it again replaces the previous handlers.

    format_style: "simple", "detailed" or "json".
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter(_FORMATS.get(format_style, _FORMATS["detailed"]))

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for one module, e.g. ``get_logger(__name__)``."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


@contextmanager
def log_timing(logger: logging.Logger, operation: str, level: int = logging.INFO):
    """
    Log the start, end and elapsed time of a block.

        with log_timing(log, "rebuilding ratings for worlds-2025"):
            engine.rebuild_ratings(tid)
    """
    start = time.perf_counter()
    logger.log(level, "Starting %s", operation)
    try:
        yield
    except Exception as exc:
        logger.error("Failed %s after %.2fs: %s", operation, time.perf_counter() - start, exc)
        raise
    logger.log(level, "Completed %s in %.2fs", operation, time.perf_counter() - start)
