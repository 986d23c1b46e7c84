"""
Retry Policy for Origin Fetches

Architectural Decision: tenacity for retries
- Exponential backoff with jitter (avoids synchronized retry storms)
- Only network errors are retried; auth and malformed-payload errors
  cannot succeed on a second attempt
- Rate limiting is not retried here: the orchestrator serves stale data
  and schedules a delayed refresh from the platform's Retry-After hint

Author: System Architect
Date: 2025-12-10
"""

import logging

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from adfatigue.core.exceptions import OriginNetworkError


def create_retry_decorator(
    max_attempts: int,
    base_delay: float,
    max_delay: float,
    retry_exceptions: tuple = (OriginNetworkError,),
):
    """
    Build a tenacity retry decorator for async origin calls.

    Args:
        max_attempts: Total attempts including the first one
        base_delay: Initial backoff in seconds
        max_delay: Backoff ceiling in seconds
        retry_exceptions: Exception types that trigger another attempt

    Returns:
        Decorator; the last exception is re-raised once attempts run out
    """
    std_logger = logging.getLogger(__name__)  # Tenacity needs std lib logger

    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential_jitter(initial=base_delay, max=max_delay),
        retry=retry_if_exception_type(retry_exceptions),
        before_sleep=before_sleep_log(std_logger, logging.WARNING),
        reraise=True,
    )
