"""
Admin Routes

- GET /admin/metrics: Prometheus text exposition
- GET /admin/config: Non-secret runtime configuration
"""

from fastapi import APIRouter, Response

from adfatigue.application.api.dependencies import ScorerDep, SettingsDep
from adfatigue.infrastructure.monitoring.metrics_collector import get_metrics_collector

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/metrics")
async def get_prometheus_metrics():
    """Metrics in Prometheus text format, for scraping."""
    metrics = get_metrics_collector()
    return Response(content=metrics.get_prometheus_metrics(), media_type=metrics.get_content_type())


@router.get("/config")
async def get_config(settings: SettingsDep, scorer: ScorerDep):
    """Effective cache, freshness, origin and scoring configuration (Redis credentials omitted)."""
    return {
        "environment": settings.app.ENVIRONMENT,
        "memory_cache_enabled": settings.ENABLE_MEMORY_CACHE,
        "persistent_cache_enabled": settings.ENABLE_PERSISTENT_CACHE,
        "cache": settings.cache.model_dump(),
        "freshness": settings.freshness.model_dump(),
        "origin": settings.origin.model_dump(),
        "fatigue": settings.fatigue.model_dump(),
        "effective_weights": scorer.weights,
    }
