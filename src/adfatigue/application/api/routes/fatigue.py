"""
Fatigue Routes

Stateless scoring:
    POST /fatigue/baseline       median baseline of a history
    POST /fatigue/score          score one set of metrics
    POST /fatigue/score/batch    score several ads against one baseline
    POST /fatigue/trend          trend + 7-day projection of a series

Cached assessment:
    GET /fatigue/accounts/{account_id}?date_range=last_7d
        resolves the account's metrics through the cache tiers (origin on
        a miss) and returns score, baseline, trend and cache provenance
"""

from fastapi import APIRouter, Query

from adfatigue.application.api.dependencies import (
    AssessmentServiceDep,
    OriginFetcherDep,
    ProjectorDep,
    ScorerDep,
)
from adfatigue.application.api.models.fatigue import (
    BaselineRequest,
    BatchScoreRequest,
    BatchScoreResponse,
    ScoreRequest,
    ScoreResponse,
    TrendRequest,
)
from adfatigue.models.cache import ResolveOptions
from adfatigue.models.date_range import DateRange
from adfatigue.models.fatigue import FatigueAssessment, TrendAnalysis
from adfatigue.models.metrics import BaselineMetrics
from adfatigue.scoring.baseline import compute_baseline

router = APIRouter(prefix="/fatigue", tags=["Fatigue"])


@router.post("/baseline", response_model=BaselineMetrics)
async def baseline(body: BaselineRequest):
    return compute_baseline(body.history)


@router.post("/score", response_model=ScoreResponse)
async def score(body: ScoreRequest, scorer: ScorerDep):
    reference = body.baseline or compute_baseline(body.history)
    return ScoreResponse(
        score=scorer.score(body.current, reference),
        baseline=reference,
        comparable=reference.is_comparable,
    )


@router.post("/score/batch", response_model=BatchScoreResponse)
async def score_batch(body: BatchScoreRequest, scorer: ScorerDep):
    reference = body.baseline or compute_baseline(body.history)
    return BatchScoreResponse(
        scores=scorer.score_batch(body.items, reference),
        baseline=reference,
        comparable=reference.is_comparable,
    )


@router.post("/trend", response_model=TrendAnalysis)
async def trend(body: TrendRequest, projector: ProjectorDep):
    series = sorted(body.series, key=lambda point: point.date)
    return projector.analyze(series)


@router.get("/accounts/{account_id}", response_model=FatigueAssessment)
async def assess_account(
    account_id: str,
    service: AssessmentServiceDep,
    fetcher: OriginFetcherDep,
    date_range: str = Query(default="last_7d", description="Preset or YYYY-MM-DD_YYYY-MM-DD"),
    force_refresh: bool = Query(default=False),
    ttl_hours: float | None = Query(default=None, gt=0),
):
    """
    Raises:
        InvalidDateRangeError: Unparseable date_range (422)
        OriginError subclasses: Origin failed with nothing cached (401/429/502/504)
    """
    options = ResolveOptions(force_refresh=force_refresh, ttl_hours=ttl_hours)
    return await service.assess(account_id, DateRange.parse(date_range), fetcher, options)
