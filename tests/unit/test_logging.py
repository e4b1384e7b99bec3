"""
Unit tests for logging setup.
"""

import io
import json
import logging
from collections.abc import Generator

import pytest
import structlog

from leasequeue.config import Settings
from leasequeue.observability.logging import bind_context, build_renderer, setup_logging


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_logging(self) -> Generator[None]:
        """Put the root logger and structlog back after each test."""
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)
        structlog.contextvars.clear_contextvars()
        structlog.reset_defaults()

    def test_json_records_carry_extra_fields(self):
        """Test that stdlib records render as JSON with their extra fields."""
        stream = io.StringIO()
        setup_logging(Settings(log_format="json", log_level="DEBUG"), stream=stream)
        bind_context(component="reaper")

        logging.getLogger("leasequeue.queue").info(
            "Claimed job", extra={"queue": "q", "attempts": 2}
        )

        event = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert event["event"] == "Claimed job"
        assert event["level"] == "info"
        assert event["queue"] == "q"
        assert event["attempts"] == 2
        assert event["component"] == "reaper"
        assert event["logger"] == "leasequeue.queue"

    def test_level_filters_records(self):
        """Test that records below the configured level are dropped."""
        stream = io.StringIO()
        setup_logging(Settings(log_format="json", log_level="WARNING"), stream=stream)

        logging.getLogger("leasequeue.queue").info("Claimed job")

        assert stream.getvalue() == ""

    def test_driver_logs_quieted(self):
        """Test that driver chatter is raised to WARNING."""
        setup_logging(Settings(log_format="console"), stream=io.StringIO())

        assert logging.getLogger("pymongo").level == logging.WARNING

    def test_unknown_format(self):
        """Test that an unknown renderer name is rejected."""
        with pytest.raises(ValueError):
            build_renderer("xml")
