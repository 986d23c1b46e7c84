"""
Configuration Module

Centralized, type-safe configuration for the ad fatigue service.

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Enums, Redis key prefixes and fixed scoring breakpoints

Usage:
------
```python
from adfatigue.core.config import get_settings
from adfatigue.core.config.constants import CacheSource, FreshnessStatus

settings = get_settings()
ttl = settings.cache.CACHE_DEFAULT_TTL_HOURS
```
"""

from adfatigue.core.config.settings import Settings, get_settings, reset_settings

__all__ = ["Settings", "get_settings", "reset_settings"]
