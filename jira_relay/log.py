"""Logger configuration for the relay."""

import logging

from rich.logging import RichHandler

LOGGER_NAME = "jira_relay"


def configure_logging(debug: bool = False) -> logging.Logger:
    """Attach a single rich handler to the package logger; safe to call repeatedly."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)
    return logger
