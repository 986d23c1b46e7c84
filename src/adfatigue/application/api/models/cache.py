"""
Cache API Models

Request/response bodies for the /cache endpoints.
"""

from typing import Any

from pydantic import BaseModel, Field

from adfatigue.models.cache import CacheStats


class CacheStatsResponse(BaseModel):
    """Orchestrator counters plus per-tier statistics."""

    stats: CacheStats
    memory: dict[str, Any] | None = Field(default=None, description="Memory tier stats (None if disabled)")
    persistent: dict[str, Any] | None = Field(
        default=None, description="Persistent tier stats (None if disabled)"
    )


class WarmRequest(BaseModel):
    keys: list[str] = Field(min_length=1, description="Cache keys to copy into the memory tier")


class WarmResponse(BaseModel):
    requested: int = Field(ge=0)
    warmed: int = Field(ge=0)


class InvalidateResponse(BaseModel):
    key: str
    removed: bool


class ClearResponse(BaseModel):
    cleared: bool = True
