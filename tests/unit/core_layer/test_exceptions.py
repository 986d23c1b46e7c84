"""
Unit Tests for Core Exceptions

Tests the exception hierarchy and the structured error helpers.
"""

import pytest

from adfatigue.core.exceptions import (
    CacheError,
    ConfigurationError,
    FatigueServiceError,
    InvalidDateRangeError,
    InvalidMetricsError,
    OriginAuthInvalidError,
    OriginError,
    OriginMalformedError,
    OriginNetworkError,
    OriginRateLimitedError,
    OriginTimeoutError,
    PersistentWriteError,
    SerializationError,
    ValidationError,
)


@pytest.mark.unit
class TestFatigueServiceError:
    """Test the base exception class."""

    def test_base_error_creation(self):
        error = FatigueServiceError("Test message")

        assert str(error) == "Test message"
        assert error.details == {}
        assert error.request_id is None

    def test_details_are_copied(self):
        """Mutating the error never leaks into the caller's dict."""
        details = {"cache_key": "insights:1"}
        error = FatigueServiceError("boom", details=details)
        error.with_context(attempts=3)

        assert details == {"cache_key": "insights:1"}
        assert error.details == {"cache_key": "insights:1", "attempts": 3}

    def test_to_dict(self):
        error = FatigueServiceError("boom", request_id="req-1", details={"a": 1})

        assert error.to_dict() == {
            "error_type": "FatigueServiceError",
            "message": "boom",
            "request_id": "req-1",
            "details": {"a": 1},
        }

    def test_with_suggestion_is_chainable(self):
        error = ConfigurationError("No origin").with_suggestion("Pass origin_fetcher")

        assert isinstance(error, ConfigurationError)
        assert error.details["suggestion"] == "Pass origin_fetcher"

    def test_from_exception_wraps_original(self):
        original = ValueError("bad json")

        error = OriginMalformedError.from_exception(original, cache_key="k")

        assert isinstance(error, OriginMalformedError)
        assert error.message == "bad json"
        assert error.details["original_error"] == "ValueError"
        assert error.details["cache_key"] == "k"

    def test_repr_includes_request_id(self):
        error = FatigueServiceError("boom", request_id="req-9")
        assert "req-9" in repr(error)


@pytest.mark.unit
class TestExceptionHierarchy:
    """Test that handlers can catch errors by family."""

    @pytest.mark.parametrize(
        "error_type",
        [
            OriginRateLimitedError,
            OriginAuthInvalidError,
            OriginNetworkError,
            OriginMalformedError,
            OriginTimeoutError,
        ],
    )
    def test_origin_errors(self, error_type):
        assert issubclass(error_type, OriginError)
        assert issubclass(error_type, FatigueServiceError)

    def test_cache_errors(self):
        assert issubclass(SerializationError, CacheError)
        assert issubclass(PersistentWriteError, CacheError)

    def test_validation_errors(self):
        assert issubclass(InvalidDateRangeError, ValidationError)
        assert issubclass(InvalidMetricsError, ValidationError)

    def test_validation_error_is_not_value_error(self):
        """Raised inside pydantic validators, these must propagate unwrapped."""
        assert not issubclass(InvalidMetricsError, ValueError)


@pytest.mark.unit
class TestOriginRateLimitedError:
    """Test the retry hint carried by rate-limit errors."""

    def test_default_retry_after(self):
        error = OriginRateLimitedError("slow down")

        assert error.retry_after_seconds == 60.0
        assert error.details["retry_after_seconds"] == 60.0

    def test_explicit_retry_after(self):
        error = OriginRateLimitedError("slow down", retry_after_seconds=12.5)

        assert error.retry_after_seconds == 12.5
        assert error.to_dict()["details"]["retry_after_seconds"] == 12.5
