"""
Logging setup for the command-line and batch layers.

The detection core never logs; only the outer layers do.

Usage:
    from nvision.utils.logging import get_logger, setup_logging

    logger = get_logger(__name__)
    setup_logging(level="INFO")
    logger.info("Processing %s", path)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

_initialized = False


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """Configure the ``nvision`` logger with a stderr handler and optional log file.

    Calling it again replaces the handlers from the previous call.
    """
    global _initialized

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)

    logger = logging.getLogger("nvision")
    logger.setLevel(level)
    if _initialized:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    # stderr keeps stdout free for JSON emitted by the CLI.
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.info("Logging to file: %s", log_path)

    _initialized = True
    return logger
