"""
Unit Tests for Logging Module

Tests logger creation, request context and secret redaction.
"""

from unittest.mock import MagicMock

import pytest

from adfatigue.core.logging.logger import (
    add_log_level_name,
    add_request_id,
    clear_request_id,
    get_logger,
    get_request_id,
    log_stage,
    redact_secrets,
    set_request_id,
    setup_logging,
)


@pytest.mark.unit
class TestLoggerCreation:
    """Test logger creation and configuration."""

    def test_get_logger_has_logging_methods(self):
        logger = get_logger(__name__)

        for method in ("debug", "info", "warning", "error"):
            assert hasattr(logger, method)

    def test_setup_logging_accepts_both_formats(self):
        """Configuring twice (json then console) must not raise."""
        setup_logging(log_level="DEBUG", log_format="json")
        setup_logging(log_level="INFO", log_format="console")
        get_logger("test").info("configured")


@pytest.mark.unit
class TestRequestContext:
    """Test request ID context management."""

    def test_set_and_get_request_id(self):
        set_request_id("req-123")
        try:
            assert get_request_id() == "req-123"
        finally:
            clear_request_id()

    def test_clear_request_id(self):
        set_request_id("req-123")
        clear_request_id()

        assert get_request_id() is None

    def test_processor_injects_request_id(self):
        set_request_id("req-abc")
        try:
            event = add_request_id(None, "info", {"event": "hello"})
        finally:
            clear_request_id()

        assert event["request_id"] == "req-abc"

    def test_processor_skips_missing_request_id(self):
        event = add_request_id(None, "info", {"event": "hello"})
        assert "request_id" not in event


@pytest.mark.unit
class TestRedaction:
    """Test that access tokens and emails never reach the log output."""

    def test_meta_access_token_is_redacted(self):
        event = redact_secrets(None, "info", {"event": "token EAAGm0PX4ZCpsBA expired"})
        assert event["event"] == "token [REDACTED] expired"

    def test_bearer_token_is_redacted(self):
        event = redact_secrets(None, "info", {"event": "Authorization: Bearer abc.def-ghi"})
        assert "abc.def-ghi" not in event["event"]
        assert "Bearer [REDACTED]" in event["event"]

    def test_query_param_token_is_redacted(self):
        event = redact_secrets(None, "info", {"event": "GET /insights?access_token=secret&limit=5"})
        assert event["event"] == "GET /insights?access_token=[REDACTED]&limit=5"

    def test_email_is_redacted(self):
        event = redact_secrets(None, "info", {"event": "owner jane.doe@example.com"})
        assert event["event"] == "owner [EMAIL]"

    def test_non_string_event_is_left_alone(self):
        event = redact_secrets(None, "info", {"event": {"nested": True}})
        assert event["event"] == {"nested": True}

    def test_level_is_uppercased(self):
        assert add_log_level_name(None, "info", {"level": "warning"})["level"] == "WARNING"


@pytest.mark.unit
class TestLogStageFunction:
    """Test the log_stage utility function."""

    def test_log_stage_passes_stage_and_fields(self):
        mock_logger = MagicMock()

        log_stage(mock_logger, "CACHE.1", "Memory tier hit", cache_key="insights:1")

        mock_logger.info.assert_called_once_with(
            "Memory tier hit", stage="CACHE.1", cache_key="insights:1"
        )

    def test_log_stage_with_different_levels(self):
        mock_logger = MagicMock()

        log_stage(mock_logger, "CACHE.2", "Debug Stage", level="debug")
        log_stage(mock_logger, "CACHE.3", "Warning Stage", level="WARNING")

        mock_logger.debug.assert_called_once()
        mock_logger.warning.assert_called_once()
