"""Tests for logging configuration."""

import logging

import structlog

from quality_orchestration.logging_config import ContentRedactor, configure_logging, get_logger


class TestContentRedactor:
    def test_redacts_source_fields(self):
        event = ContentRedactor()(None, "info", {"event": "x", "content": "def test(): ...", "unit": "a.py"})

        assert event["content"] == "[REDACTED]"
        assert event["unit"] == "a.py"


class TestConfigureLogging:
    def test_sets_root_level(self):
        configure_logging(level="DEBUG", format_type="json")
        try:
            assert logging.getLogger().level == logging.DEBUG
            assert get_logger(__name__) is not None
        finally:
            structlog.reset_defaults()
            configure_logging(level="INFO")
            structlog.reset_defaults()
