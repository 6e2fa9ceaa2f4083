"""
vidaudio.logging - Centralized logging configuration.

Provides a simple logging setup with optional verbose mode for debugging.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("vidaudio")


def get_logger(name: str) -> logging.Logger:
    """Return a child of the package logger, e.g. ``vidaudio.pipeline``."""
    return logger.getChild(name)


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for the vidaudio package.

    Args:
        verbose: If True, enable DEBUG level logging; otherwise WARNING level
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )
    logger.setLevel(level)
