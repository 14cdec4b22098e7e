"""Tests for console logging setup."""

import logging

import pytest
from cross_arbitrage import logging_config


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_installs_single_console_handler(restore_root_logger):
    logging_config.setup(logging.INFO)
    logging_config.setup(logging.INFO)

    root = restore_root_logger
    assert len(root.handlers) == 1
    assert "%(levelname)-7s" in root.handlers[0].formatter._fmt
    assert logging.getLogger("ccxt").level == logging.WARNING
    assert logging.getLogger("uvicorn.access").level == logging.WARNING


def test_setup_minimal(restore_root_logger):
    logging_config.setup_minimal()
    assert restore_root_logger.level == logging.WARNING


def test_setup_debug_enables_access_log(restore_root_logger):
    logging_config.setup_debug()
    assert restore_root_logger.level == logging.DEBUG
    assert logging.getLogger("uvicorn.access").level == logging.INFO
