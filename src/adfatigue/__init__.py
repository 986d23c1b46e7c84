"""
Ad Fatigue Service

Multi-tier cache for ad platform insights (memory LRU, Redis, origin API)
plus a baseline-relative fatigue scoring engine.
"""

__version__ = "1.0.0"
