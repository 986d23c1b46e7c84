"""
API Models Package

- cache.py: Cache endpoint request/response models
- fatigue.py: Scoring endpoint request/response models
"""

from adfatigue.application.api.models.cache import (
    CacheStatsResponse,
    ClearResponse,
    InvalidateResponse,
    WarmRequest,
    WarmResponse,
)
from adfatigue.application.api.models.fatigue import (
    BaselineRequest,
    BatchScoreRequest,
    BatchScoreResponse,
    ScoreRequest,
    ScoreResponse,
    TrendRequest,
)

__all__ = [
    # Cache
    "CacheStatsResponse",
    "ClearResponse",
    "InvalidateResponse",
    "WarmRequest",
    "WarmResponse",
    # Fatigue
    "BaselineRequest",
    "BatchScoreRequest",
    "BatchScoreResponse",
    "ScoreRequest",
    "ScoreResponse",
    "TrendRequest",
]
