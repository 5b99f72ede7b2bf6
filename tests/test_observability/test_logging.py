"""Tests for structlog configuration."""

import logging

import pytest
import structlog

from pagesync.observability.logging import QUIET_LOGGERS, setup_logging
from pagesync.observability.tracing import add_trace_context


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


class TestSetupLogging:
    def test_console_renderer_in_development(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "development")

        setup_logging()

        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, structlog.dev.ConsoleRenderer) for p in processors)

    def test_json_renderer_in_production(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")

        setup_logging()

        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, structlog.processors.JSONRenderer) for p in processors)

    def test_transport_loggers_quieted(self):
        setup_logging()

        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_trace_ids_processor_installed(self):
        setup_logging()

        assert add_trace_context in structlog.get_config()["processors"]
