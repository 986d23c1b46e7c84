"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .fetcher_factory import CountingFetcher, MetricsFetcherStub
from .metrics_factory import MetricsFactory

__all__ = ["CountingFetcher", "MetricsFactory", "MetricsFetcherStub"]
