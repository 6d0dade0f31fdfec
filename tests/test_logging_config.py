"""
Tests for the structlog configuration.

configure_logging() changes process-wide state, so every test
restores structlog's defaults afterwards; the other suites rely
on them for structlog.testing.capture_logs.
"""

import logging

import pytest
import structlog

from erp_ledger.logging_config import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


def renderer():
    return structlog.get_config()["processors"][-1]


def test_json_renderer():
    configure_logging(level="INFO", format="json")
    assert isinstance(renderer(), structlog.processors.JSONRenderer)


def test_console_renderer():
    configure_logging(level="INFO", format="console")
    assert isinstance(renderer(), structlog.dev.ConsoleRenderer)


def test_sql_echo_only_at_debug():
    configure_logging(level="INFO", format="json")
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    configure_logging(level="DEBUG", format="json")
    assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
