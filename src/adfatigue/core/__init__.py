"""
Core Module

Foundational components: configuration, logging, exceptions and the
abstract contracts implemented by the infrastructure layer.
"""

from .exceptions import (
    CacheError,
    ConfigurationError,
    FatigueServiceError,
    OriginAuthInvalidError,
    OriginError,
    OriginNetworkError,
    OriginRateLimitedError,
    SerializationError,
    ValidationError,
)
from .logging import (
    clear_request_id,
    get_logger,
    get_request_id,
    log_stage,
    set_request_id,
    setup_logging,
)

__all__ = [
    # Exceptions
    "FatigueServiceError",
    "ConfigurationError",
    "CacheError",
    "SerializationError",
    "OriginError",
    "OriginAuthInvalidError",
    "OriginNetworkError",
    "OriginRateLimitedError",
    "ValidationError",
    # Logging
    "clear_request_id",
    "get_logger",
    "get_request_id",
    "log_stage",
    "set_request_id",
    "setup_logging",
]
