"""Logging configuration for the command line."""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "teamflow"


def configure_logging(verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """Attach a single RichHandler to the package logger.

    Library modules only create loggers; handlers are installed here, once.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)

    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger
