"""Unified logging configuration for the Collapsi rules service.

Usage:
    from collapsi.core.logging_config import setup_logging, get_logger

    logger = setup_logging("collapsi", level="DEBUG", log_dir="logs")
    logger.info("ready")

    with LogContext(logger, logging.DEBUG):
        ...  # temporarily verbose
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Iterable, Optional, Union

__all__ = [
    "COMPACT_FORMAT",
    "DEFAULT_FORMAT",
    "DETAILED_FORMAT",
    "STRUCTURED_FORMAT",
    "LogContext",
    "configure_third_party_loggers",
    "get_logger",
    "resolve_format",
    "setup_logging",
]

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
COMPACT_FORMAT = "%(asctime)s %(levelname).1s %(message)s"
DETAILED_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "%(filename)s:%(lineno)d - %(message)s"
)
STRUCTURED_FORMAT = (
    '{"time": "%(asctime)s", "logger": "%(name)s", '
    '"level": "%(levelname)s", "message": "%(message)s"}'
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_FORMATS = {
    "default": DEFAULT_FORMAT,
    "compact": COMPACT_FORMAT,
    "detailed": DETAILED_FORMAT,
    "structured": STRUCTURED_FORMAT,
}

# Packages that log heavily at INFO and are quieted by default.
NOISY_PACKAGES = ("urllib3", "httpx", "httpcore", "uvicorn.access", "asyncio")


def resolve_format(format_style: str) -> str:
    """Format string for a style name, falling back to the default."""
    return _FORMATS.get(format_style, DEFAULT_FORMAT)


def setup_logging(
    name: str,
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    log_dir: Optional[Union[str, Path]] = None,
    console: bool = True,
    propagate: bool = False,
    format_style: str = "default",
) -> logging.Logger:
    """Configure and return the logger called ``name``.

    Calling it again for the same name reuses the existing handlers instead
    of stacking duplicates. ``log_dir`` writes to ``<log_dir>/<name>.log``.
    Unknown ``format_style`` values fall back to the default format.
    """
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)
    logger.propagate = propagate

    formatter = logging.Formatter(
        resolve_format(format_style), datefmt=DATE_FORMAT
    )

    if console and not any(
        type(h) is logging.StreamHandler for h in logger.handlers
    ):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if log_file is None and log_dir is not None:
        log_file = Path(log_dir) / f"{name}.log"
    if log_file is not None:
        log_path = Path(os.path.abspath(log_file))
        existing = {
            getattr(h, "baseFilename", None)
            for h in logger.handlers
            if isinstance(h, logging.FileHandler)
        }
        if str(log_path) not in existing:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def configure_third_party_loggers(
    quiet: bool = True, verbose_packages: Optional[Iterable[str]] = None
) -> None:
    """Raise noisy third-party loggers to WARNING unless listed as verbose."""
    if not quiet:
        return
    verbose = set(verbose_packages or ())
    for package in NOISY_PACKAGES:
        if package not in verbose:
            logging.getLogger(package).setLevel(logging.WARNING)


class LogContext:
    """Temporarily change a logger's level."""

    def __init__(self, logger: logging.Logger, level: int) -> None:
        self.logger = logger
        self.level = level
        self._previous = logger.level

    def __enter__(self) -> logging.Logger:
        self._previous = self.logger.level
        self.logger.setLevel(self.level)
        return self.logger

    def __exit__(self, exc_type, exc, tb) -> None:
        self.logger.setLevel(self._previous)
