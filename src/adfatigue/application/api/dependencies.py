"""
FastAPI Dependencies

Application singletons are created once in the lifespan handler and kept
on app.state. Routes receive them through the Annotated aliases below,
which tests replace with app.dependency_overrides.

Example:
    @router.get("/stats")
    async def stats(orchestrator: OrchestratorDep):
        return orchestrator.get_stats()
"""

from typing import Annotated

from fastapi import Depends, Request

from adfatigue.core.config.settings import Settings, get_settings
from adfatigue.core.exceptions import ConfigurationError
from adfatigue.infrastructure.cache.cache_orchestrator import (
    CacheOrchestrator,
    get_cache_orchestrator,
)
from adfatigue.scoring.fatigue_scorer import FatigueScorer
from adfatigue.scoring.trend import TrendProjector
from adfatigue.services.assessment import FatigueAssessmentService, MetricsFetcher


def get_orchestrator(request: Request) -> CacheOrchestrator:
    """
    Cache orchestrator from app.state.

    Falls back to the process-wide memory-only orchestrator when the
    lifespan handler has not run (TestClient without a context manager).
    """
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = get_cache_orchestrator()
        request.app.state.orchestrator = orchestrator
    return orchestrator


def get_scorer(request: Request) -> FatigueScorer:
    scorer = getattr(request.app.state, "scorer", None)
    if scorer is None:
        scorer = FatigueScorer()
        request.app.state.scorer = scorer
    return scorer


def get_projector(scorer: Annotated[FatigueScorer, Depends(get_scorer)]) -> TrendProjector:
    return TrendProjector(scorer)


def get_assessment_service(
    request: Request,
    orchestrator: Annotated[CacheOrchestrator, Depends(get_orchestrator)],
    scorer: Annotated[FatigueScorer, Depends(get_scorer)],
) -> FatigueAssessmentService:
    service = getattr(request.app.state, "assessment_service", None)
    if service is None:
        service = FatigueAssessmentService(orchestrator, scorer=scorer)
        request.app.state.assessment_service = service
    return service


def get_origin_fetcher(request: Request) -> MetricsFetcher:
    """
    Ad platform client registered with create_app(origin_fetcher=...).

    Raises:
        ConfigurationError: If no client was registered (503)
    """
    fetcher = getattr(request.app.state, "origin_fetcher", None)
    if fetcher is None:
        raise ConfigurationError(
            "No origin fetcher configured"
        ).with_suggestion("Pass origin_fetcher to create_app()")
    return fetcher


# Type aliases for cleaner route signatures
SettingsDep = Annotated[Settings, Depends(get_settings)]
OrchestratorDep = Annotated[CacheOrchestrator, Depends(get_orchestrator)]
ScorerDep = Annotated[FatigueScorer, Depends(get_scorer)]
ProjectorDep = Annotated[TrendProjector, Depends(get_projector)]
AssessmentServiceDep = Annotated[FatigueAssessmentService, Depends(get_assessment_service)]
OriginFetcherDep = Annotated[MetricsFetcher, Depends(get_origin_fetcher)]
