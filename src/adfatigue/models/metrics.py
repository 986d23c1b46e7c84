"""
Ad Metrics Models

The ad platform returns numeric fields as strings ("1.23") and omits
fields it has no value for. AdMetrics coerces both into floats so the
scoring engine only ever sees clean, non-negative numbers.

This module defines:
- AdMetrics: One row of delivery metrics (ctr, cpm, frequency, ...)
- MetricsPoint: AdMetrics for a single day
- MetricsPayload: What the origin fetcher returns for a cache key
- BaselineMetrics: Robust historical summary used as the scoring reference
"""

import math
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, ValidationInfo, computed_field, field_validator

from adfatigue.core.exceptions import InvalidMetricsError


class AdMetrics(BaseModel):
    """
    Delivery metrics for one ad (or one ad on one day).

    Percentages (ctr) are expressed in percent, as the platform does.
    """

    ctr: float = 0.0
    cpm: float = 0.0
    frequency: float = 0.0
    impressions: float = 0.0
    clicks: float = 0.0
    spend: float = 0.0
    reach: float = 0.0

    @field_validator("*", mode="before")
    @classmethod
    def coerce_numeric(cls, v: Any, info: ValidationInfo) -> float:
        """Coerce platform strings and None into floats >= 0."""
        if v is None or v == "":
            return 0.0
        try:
            value = float(v)
        except (TypeError, ValueError):
            raise InvalidMetricsError(
                f"{info.field_name} is not numeric: {v!r}", details={"field": info.field_name}
            )
        if not math.isfinite(value) or value < 0:
            raise InvalidMetricsError(
                f"{info.field_name} must be a finite non-negative number, got {v!r}",
                details={"field": info.field_name},
            )
        return value


class MetricsPoint(BaseModel):
    """Metrics for a single calendar day."""

    date: date
    metrics: AdMetrics


class MetricsPayload(BaseModel):
    """
    Time series returned by the origin fetcher for one cache key.

    data_completeness is the share of days in the requested range that
    the platform actually reported, in percent.
    """

    account_id: str
    since: date
    until: date
    points: list[MetricsPoint] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @computed_field
    @property
    def data_completeness(self) -> float:
        expected_days = (self.until - self.since).days + 1
        if expected_days <= 0:
            return 0.0
        covered = {point.date for point in self.points if self.since <= point.date <= self.until}
        return round(min(100.0, len(covered) / expected_days * 100), 2)

    def sorted_points(self) -> list[MetricsPoint]:
        return sorted(self.points, key=lambda point: point.date)


class BaselineMetrics(BaseModel):
    """
    Robust summary of a historical window.

    A baseline with data_points == 0 means "no comparison possible",
    not "metrics are perfect".
    """

    ctr: float = 0.0
    cpm: float = 0.0
    frequency: float = 0.0
    calculated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data_points: int = 0

    @property
    def is_comparable(self) -> bool:
        return self.data_points > 0
