"""
Exception Module

Structured exception hierarchy for the ad fatigue service.

Module Structure:
-----------------
- **base.py**: FatigueServiceError base class + ConfigurationError
- **cache.py**: Cache tier exceptions
- **origin.py**: Origin (ad platform API) exceptions
- **validation.py**: Input validation exceptions

Usage:
------
```python
from adfatigue.core.exceptions import OriginRateLimitedError, SerializationError
```
"""

from adfatigue.core.exceptions.base import ConfigurationError, FatigueServiceError
from adfatigue.core.exceptions.cache import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    PersistentWriteError,
    SerializationError,
)
from adfatigue.core.exceptions.origin import (
    OriginAuthInvalidError,
    OriginError,
    OriginMalformedError,
    OriginNetworkError,
    OriginRateLimitedError,
    OriginTimeoutError,
)
from adfatigue.core.exceptions.validation import (
    InvalidDateRangeError,
    InvalidMetricsError,
    ValidationError,
)

__all__ = [
    # Base
    "FatigueServiceError",
    "ConfigurationError",
    # Cache
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "SerializationError",
    "PersistentWriteError",
    # Origin
    "OriginError",
    "OriginRateLimitedError",
    "OriginAuthInvalidError",
    "OriginNetworkError",
    "OriginMalformedError",
    "OriginTimeoutError",
    # Validation
    "ValidationError",
    "InvalidDateRangeError",
    "InvalidMetricsError",
]
