"""
Fatigue API Models

Request/response bodies for the stateless /fatigue scoring endpoints.
Metrics bodies reuse AdMetrics, so platform-style strings ("1.23") are
accepted here too.
"""

from pydantic import BaseModel, Field

from adfatigue.models.fatigue import FatigueScore
from adfatigue.models.metrics import AdMetrics, BaselineMetrics, MetricsPoint


class BaselineRequest(BaseModel):
    history: list[AdMetrics] = Field(default_factory=list)


class ScoreRequest(BaseModel):
    """
    Score current metrics.

    Either pass a precomputed baseline or the history to derive it from;
    baseline wins when both are given.
    """

    current: AdMetrics
    history: list[AdMetrics] = Field(default_factory=list)
    baseline: BaselineMetrics | None = None


class ScoreResponse(BaseModel):
    score: FatigueScore
    baseline: BaselineMetrics
    comparable: bool


class BatchScoreRequest(BaseModel):
    items: dict[str, AdMetrics] = Field(min_length=1, description="Ad id -> current metrics")
    history: list[AdMetrics] = Field(default_factory=list)
    baseline: BaselineMetrics | None = None


class BatchScoreResponse(BaseModel):
    scores: dict[str, FatigueScore]
    baseline: BaselineMetrics
    comparable: bool


class TrendRequest(BaseModel):
    series: list[MetricsPoint] = Field(default_factory=list)
