"""Logging setup with rich formatting on stderr."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "review_tally"


def configure_logging(*, verbose: bool = False) -> logging.Logger:
    """Attach a stderr rich handler to the package logger once and set its level."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not any(isinstance(handler, RichHandler) for handler in root_logger.handlers):
        handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        root_logger.addHandler(handler)
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the package logger hierarchy."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
