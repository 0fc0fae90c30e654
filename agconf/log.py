"""Logging configuration for agconf, rendered through rich."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LogLevel = int | str


def configure_logging(level: LogLevel = "INFO", *, use_colors: bool | None = None) -> None:
    """Configure standard logging with a rich stderr handler.

    Args:
        level: Logging level name or number.
        use_colors: Force colored output on or off (auto-detected if None).
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    console = Console(stderr=True, no_color=use_colors is False, force_terminal=use_colors or None)
    handler = RichHandler(console=console, show_path=False, markup=False, rich_tracebacks=True)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


def get_logger(name: str, log_level: LogLevel | None = None) -> logging.Logger:
    """Get a logger for the given module name."""
    logger = logging.getLogger(name)
    if log_level is not None:
        if isinstance(log_level, str):
            log_level = getattr(logging, log_level.upper())
        logger.setLevel(log_level)
    return logger
