"""
Health Check Routes

- GET /health: Status of the cache tiers, for load balancers and dashboards
- GET /health/live: Liveness probe (process is up, no dependency checks)
- GET /health/ready: Readiness probe (503 while the persistent tier is
  configured but unreachable)

A memory tier close to its byte budget reports "degraded" but stays ready:
it keeps serving by evicting.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from adfatigue.application.api.dependencies import OrchestratorDep

router = APIRouter(prefix="/health", tags=["Health"])


class HealthResponse(BaseModel):
    status: str  # healthy, degraded
    timestamp: str
    components: dict | None = None


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("", response_model=HealthResponse)
async def health_check(orchestrator: OrchestratorDep):
    """Overall status plus the orchestrator's component report."""
    health = await orchestrator.health_check()
    return HealthResponse(status=health["status"], timestamp=_timestamp(), components={"cache": health})


@router.get("/live")
async def liveness_probe():
    return {"status": "alive", "timestamp": _timestamp()}


@router.get("/ready")
async def readiness_probe(orchestrator: OrchestratorDep):
    """
    Raises:
        HTTPException: 503 if the persistent tier is configured but unreachable
    """
    health = await orchestrator.health_check()
    persistent = health.get("persistent")

    if persistent is not None and persistent["status"] != "healthy":
        raise HTTPException(
            status_code=503,
            detail={"status": "not_ready", "reason": "persistent tier unreachable", "components": health},
        )

    return {"status": "ready", "timestamp": _timestamp(), "components": health}
