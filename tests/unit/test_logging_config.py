"""Tests for structured logging configuration."""

import json
import logging
import re
from io import StringIO

import pytest
import structlog

from ocw_pipeline.logging_config import configure_logging


@pytest.fixture(autouse=True)
def _reset_structlog() -> None:
    """Reset structlog state after each test."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.WARNING)


def _capture_log_output(
    environment: str,
    log_level: str = "DEBUG",
    **event_kw: str,
) -> str:
    """Configure logging, emit a message, return captured output."""
    configure_logging(environment=environment, log_level=log_level)

    stream = StringIO()
    root = logging.getLogger()
    if not root.handlers or not isinstance(root.handlers[0], logging.StreamHandler):
        raise RuntimeError("Expected configure_logging to set up a StreamHandler")

    original_stream = root.handlers[0].stream
    root.handlers[0].stream = stream

    logger = structlog.get_logger()
    logger.info("test_event", key="value", **event_kw)

    root.handlers[0].stream = original_stream
    return stream.getvalue()


class TestConfigureLogging:
    def test_configure_production_json(self) -> None:
        """Production environment produces valid JSON output."""
        parsed = json.loads(_capture_log_output("production"))
        assert parsed["event"] == "test_event"
        assert parsed["key"] == "value"
        assert parsed["level"] == "info"

    def test_configure_development_console(self) -> None:
        output = _capture_log_output("development")
        plain = re.sub(r"\x1b\[[0-9;]*m", "", output)
        assert "test_event" in plain
        assert "key=value" in plain

    def test_configure_sets_log_level(self) -> None:
        configure_logging(log_level="WARNING")
        assert logging.getLogger().level == logging.WARNING

    def test_configure_includes_timestamp(self) -> None:
        parsed = json.loads(_capture_log_output("production"))
        assert "T" in parsed["timestamp"]

    def test_sensitive_keys_redacted(self) -> None:
        parsed = json.loads(_capture_log_output("production", api_key="sk-123"))
        assert parsed["api_key"] == "***REDACTED***"

    def test_contextvars_merged(self) -> None:
        """Values bound by the CLI (course_slug) appear on every event."""
        structlog.contextvars.bind_contextvars(course_slug="18-06")
        parsed = json.loads(_capture_log_output("production"))
        assert parsed["course_slug"] == "18-06"

    def test_httpx_logger_quieted(self) -> None:
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
