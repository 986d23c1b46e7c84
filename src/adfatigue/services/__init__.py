"""
Services Package

- assessment.py: Resolve metrics through the cache and score them
"""

from adfatigue.services.assessment import FatigueAssessmentService, MetricsFetcher, parse_payload

__all__ = ["FatigueAssessmentService", "MetricsFetcher", "parse_payload"]
