"""
Tests for structured JSON logging configuration.

Tests logging_config.py module functionality.
"""

import json
import logging
import sys

import pytest

from ai_gateway.logging_config import JSONFormatter, setup_logging


def make_record(**extra):
    record = logging.LogRecord(
        name="ai_gateway.providers.base",
        level=logging.INFO,
        pathname="base.py",
        lineno=42,
        msg="Anthropic Claude call completed",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test JSONFormatter class."""

    def test_basic_log_formatting(self):
        """Test that basic log record is formatted as JSON."""
        log_data = json.loads(JSONFormatter().format(make_record()))

        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "ai_gateway.providers.base"
        assert log_data["message"] == "Anthropic Claude call completed"
        assert log_data["line"] == 42
        assert log_data["timestamp"].endswith("Z")

    def test_gateway_fields(self):
        """Structured call context from extra= is emitted."""
        record = make_record(provider="anthropic", model="m", input_tokens=12, output_tokens=8)

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["provider"] == "anthropic"
        assert log_data["model"] == "m"
        assert log_data["input_tokens"] == 12
        assert log_data["output_tokens"] == 8

    def test_absent_fields_omitted(self):
        log_data = json.loads(JSONFormatter().format(make_record()))
        assert "provider" not in log_data
        assert "attempt" not in log_data

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()

        log_data = json.loads(JSONFormatter().format(record))

        assert "ValueError: boom" in log_data["exception"]


class TestSetupLogging:
    """Test setup_logging function."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_installs_json_handler(self):
        setup_logging("DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_quiets_sdk_loggers(self):
        setup_logging()

        for name in ("httpx", "httpcore", "anthropic", "openai"):
            assert logging.getLogger(name).level == logging.WARNING

    def test_unknown_level_defaults_to_info(self):
        setup_logging("CHATTY")
        assert logging.getLogger().level == logging.INFO
