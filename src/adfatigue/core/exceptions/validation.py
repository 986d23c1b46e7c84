"""
Validation Exceptions

Author: System Architect
Date: 2025-12-08
"""

from adfatigue.core.exceptions.base import FatigueServiceError


class ValidationError(FatigueServiceError):
    """Base class for all validation-related errors."""
    pass


class InvalidDateRangeError(ValidationError):
    """
    Raised when a date range descriptor cannot be resolved.

    Common causes:
    - Unknown preset name
    - since > until
    - Malformed ISO date
    """
    pass


class InvalidMetricsError(ValidationError):
    """Raised when a metrics payload holds negative or non-numeric values."""
    pass
