"""Logging setup with rich console output."""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "journey_warden"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a RichHandler to the package logger.

    Calling it again only updates the level, so the CLI and tests can both
    call it without stacking handlers.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
