"""Tests for library logging setup."""

import logging

import pytest

from firestore_rest.core.config import Settings
from firestore_rest.shared.telemetry.logging import LOGGER_NAMESPACE, get_logger, setup_logging


@pytest.fixture
def namespace_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAMESPACE)
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


def test_module_loggers_live_under_namespace() -> None:
    logger = get_logger("firestore_rest.infrastructure.firebase.documents")
    assert logger.name.startswith(f"{LOGGER_NAMESPACE}.")


def test_setup_logging_level_follows_debug(namespace_logger: logging.Logger) -> None:
    setup_logging(Settings(_env_file=None, debug=True))
    assert namespace_logger.level == logging.DEBUG
    setup_logging(Settings(_env_file=None, debug=False))
    assert namespace_logger.level == logging.INFO


def test_setup_logging_adds_one_stream_handler(namespace_logger: logging.Logger) -> None:
    settings = Settings(_env_file=None)
    setup_logging(settings)
    setup_logging(settings, level=logging.WARNING)
    named = [h for h in namespace_logger.handlers if h.name == LOGGER_NAMESPACE]
    assert len(named) == 1
    assert namespace_logger.level == logging.WARNING
