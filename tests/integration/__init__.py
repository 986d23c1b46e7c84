"""
Integration tests.

Tests marked `integration` need a running Redis (REDIS_HOST / REDIS_PORT)
and exercise the persistent tier through RedisClient instead of the
in-memory backend.
"""
