"""
Fatigue Scoring Models

Outputs of the scoring engine. These are derived values: nothing here
is persisted by the cache core.
"""

from datetime import date

from pydantic import BaseModel, Field

from adfatigue.core.config.constants import CacheSource, FatigueStatus, TrendDirection
from adfatigue.models.cache import CacheStats
from adfatigue.models.metrics import BaselineMetrics


class FatigueSubScores(BaseModel):
    """Independent 0-100 sub-scores."""

    creative: int = Field(ge=0, le=100)
    audience: int = Field(ge=0, le=100)
    algorithm: int = Field(ge=0, le=100)


class FatigueDetails(BaseModel):
    """Raw signals behind the sub-scores (percent / absolute frequency)."""

    ctr_decline: float
    frequency_level: float
    cpm_increase: float


class FatigueScore(BaseModel):
    """Weighted fatigue risk for one set of metrics."""

    total_score: int = Field(ge=0, le=100)
    status: FatigueStatus
    scores: FatigueSubScores
    details: FatigueDetails
    recommendations: list[str] = Field(default_factory=list)


class TrendAnalysis(BaseModel):
    """
    First-order fatigue trend over a time series.

    projection is a naive linear 7-day extrapolation, clamped to [0, 100].
    """

    trend: TrendDirection = TrendDirection.STABLE
    change_rate: float = 0.0
    projection: float = 0.0


class FatigueAssessment(BaseModel):
    """Everything the dashboard needs for one account and date range."""

    account_id: str
    since: date
    until: date
    score: FatigueScore | None
    baseline: BaselineMetrics
    trend: TrendAnalysis
    source: CacheSource
    stale: bool = False
    comparable: bool = True
    stats: CacheStats
