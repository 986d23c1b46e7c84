"""
Origin Exceptions

Typed errors raised by the origin fetcher (the ad platform API client).

Recovery policy, applied by the cache orchestrator:
- OriginRateLimitedError: serve stale data if present, retry after the hint
- OriginAuthInvalidError: never retried, surfaced immediately
- OriginNetworkError: retried with exponential backoff, surfaced when exhausted
- OriginMalformedError: never retried
- OriginTimeoutError: stale data served instead when present

Author: System Architect
Date: 2025-12-08
"""

from typing import Any

from adfatigue.core.exceptions.base import FatigueServiceError


class OriginError(FatigueServiceError):
    """Base exception for origin fetch errors."""
    pass


class OriginRateLimitedError(OriginError):
    """
    Raised when the ad platform rejects a call for rate limiting.

    Carries the platform's retry hint so callers (and the orchestrator's
    background retry) know when the next attempt can succeed.
    """

    def __init__(
        self,
        message: str,
        retry_after_seconds: float = 60.0,
        request_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, request_id=request_id, details=details)
        self.retry_after_seconds = retry_after_seconds
        self.details.setdefault("retry_after_seconds", retry_after_seconds)


class OriginAuthInvalidError(OriginError):
    """
    Raised when the access token is missing, expired or revoked.

    Retrying cannot succeed without external re-authentication.
    """
    pass


class OriginNetworkError(OriginError):
    """
    Raised on transport failures (DNS, connection reset, 5xx).

    Retryable up to a bounded attempt count.
    """
    pass


class OriginMalformedError(OriginError):
    """Raised when the origin returns a payload that cannot be parsed."""
    pass


class OriginTimeoutError(OriginError):
    """
    Raised when an origin fetch exceeds the caller's timeout and no
    cached value exists to fall back on.
    """
    pass
