"""Logging for the client library.

Modules log through get_logger(__name__), which places them under the
'firestore_rest' namespace. That namespace carries a NullHandler, so the
library stays quiet until the embedding application configures logging.
"""

import logging
import sys

from firestore_rest.core.config import Settings, get_settings

LOGGER_NAMESPACE = "firestore_rest"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logging.getLogger(LOGGER_NAMESPACE).addHandler(logging.NullHandler())


def setup_logging(settings: Settings | None = None, level: int | None = None) -> None:
    """Send the library's log records to stdout (for scripts and debugging).

    Level is DEBUG when settings.debug is True, otherwise INFO, unless given.
    Only the 'firestore_rest' logger is touched; calling twice does not add
    a second handler.
    """
    settings = settings or get_settings()
    if level is None:
        level = logging.DEBUG if settings.debug else logging.INFO
    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.setLevel(level)
    if not any(getattr(h, "name", None) == LOGGER_NAMESPACE for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.set_name(LOGGER_NAMESPACE)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module (pass __name__)."""
    return logging.getLogger(name)
