"""
Infrastructure Layer

Cache tiers, the Redis client and Prometheus metrics.
"""
