"""Tests for structured logging setup."""

import io
import json
import logging

import pytest

from chainhive.logging_config import configure_logging


@pytest.fixture
def log_stream(restore_root_logging):
    return io.StringIO()


def last_line(stream: io.StringIO) -> str:
    return stream.getvalue().strip().splitlines()[-1]


class TestConfigureLogging:
    """Test configure_logging."""

    def test_json_output(self, log_stream):
        configure_logging("INFO", "json", stream=log_stream)

        logging.getLogger("chainhive.test").warning(
            "Attempt 1/3 failed", extra={"context": "nodit tokens ethereum", "code": 503}
        )

        entry = json.loads(last_line(log_stream))
        assert entry["message"] == "Attempt 1/3 failed"
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "chainhive.test"
        assert entry["context"] == "nodit tokens ethereum"
        assert entry["code"] == 503
        assert entry["app"] == "chainhive"
        assert "timestamp" in entry

    def test_level_filtering(self, log_stream):
        configure_logging("WARNING", "json", stream=log_stream)

        logging.getLogger("chainhive.test").info("hidden")

        assert log_stream.getvalue() == ""

    def test_warn_alias(self, log_stream):
        configure_logging("warn", stream=log_stream)
        assert logging.getLogger().level == logging.WARNING

    def test_unknown_level(self, restore_root_logging):
        with pytest.raises(ValueError):
            configure_logging("CHATTY")

    def test_console_output(self, log_stream):
        configure_logging("INFO", "console", stream=log_stream)

        logging.getLogger("chainhive.test").info("Circuit breaker nodit_api CLOSED")

        assert "Circuit breaker nodit_api CLOSED" in log_stream.getvalue()

    def test_replaces_existing_handlers(self, log_stream):
        configure_logging("INFO", stream=io.StringIO())
        handler = configure_logging("INFO", stream=log_stream)

        assert logging.getLogger().handlers == [handler]

    def test_quiets_http_libraries(self, log_stream):
        configure_logging("DEBUG", stream=log_stream)
        assert logging.getLogger("httpx").level == logging.WARNING
