"""
Cache Administration Routes

Operational endpoints over the cache orchestrator: statistics, health,
warming, invalidation and the freshness refresh queue.
"""

from fastapi import APIRouter, HTTPException, Query

from adfatigue.application.api.dependencies import OrchestratorDep
from adfatigue.application.api.models.cache import (
    CacheStatsResponse,
    ClearResponse,
    InvalidateResponse,
    WarmRequest,
    WarmResponse,
)
from adfatigue.core.logging.logger import get_logger
from adfatigue.models.cache import FreshnessRecord

logger = get_logger(__name__)

router = APIRouter(prefix="/cache", tags=["Cache"])


@router.get("/stats", response_model=CacheStatsResponse)
async def get_cache_stats(orchestrator: OrchestratorDep):
    """Hit/miss counters of this process's orchestrator plus tier statistics."""
    memory = orchestrator.memory.stats() if orchestrator.memory is not None else None
    persistent = await orchestrator.persistent.get_stats() if orchestrator.persistent is not None else None
    return CacheStatsResponse(stats=orchestrator.get_stats(), memory=memory, persistent=persistent)


@router.get("/health")
async def get_cache_health(orchestrator: OrchestratorDep):
    return await orchestrator.health_check()


@router.post("/warm", response_model=WarmResponse)
async def warm_cache(body: WarmRequest, orchestrator: OrchestratorDep):
    """Copy fresh persistent entries into the memory tier."""
    warmed = await orchestrator.warm(body.keys)
    return WarmResponse(requested=len(body.keys), warmed=warmed)


@router.delete("/entries/{key:path}", response_model=InvalidateResponse)
async def invalidate_entry(key: str, orchestrator: OrchestratorDep):
    removed = await orchestrator.invalidate(key)
    return InvalidateResponse(key=key, removed=removed)


@router.delete("", response_model=ClearResponse)
async def clear_cache(orchestrator: OrchestratorDep):
    """Wipe both tiers, freshness records included, and reset counters."""
    await orchestrator.clear()
    logger.warning("Cache cleared through the API", stage="CACHE.4")
    return ClearResponse()


@router.get("/freshness/due", response_model=list[FreshnessRecord])
async def get_entries_needing_update(
    orchestrator: OrchestratorDep,
    limit: int = Query(default=50, ge=1, le=1000),
):
    """Keys overdue for a refresh, highest priority first."""
    if orchestrator.persistent is None:
        return []
    return await orchestrator.persistent.get_entries_needing_update(limit=limit)


@router.get("/freshness/{key:path}", response_model=FreshnessRecord)
async def get_freshness(key: str, orchestrator: OrchestratorDep):
    """
    Raises:
        HTTPException: 404 if the key has no freshness record
    """
    record = None
    if orchestrator.persistent is not None:
        record = await orchestrator.persistent.get_freshness(key)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No freshness record for {key}")
    return record
