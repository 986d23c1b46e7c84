#!/usr/bin/env python3
"""
Fatigue Assessment Service

Glue between the cache core and the scoring engine:

    STAGE-ASSESS.1: Build the canonical cache key for account + date range
    STAGE-ASSESS.2: Resolve the metrics payload through the orchestrator
    STAGE-ASSESS.3: Baseline over the history (every point but the latest)
    STAGE-ASSESS.4: Score the latest point, analyze the trend

The origin payload is validated inside the fetch, so a payload that does
not parse as MetricsPayload is rejected as OriginMalformedError and never
reaches either cache tier.

Author: System Architect
Date: 2025-12-12
"""

from collections.abc import Awaitable, Callable
from typing import Any

import pydantic

from adfatigue.core.config.constants import CacheSource
from adfatigue.core.exceptions import InvalidMetricsError, OriginMalformedError
from adfatigue.core.logging.logger import get_logger, log_stage
from adfatigue.infrastructure.cache.cache_orchestrator import CacheOrchestrator
from adfatigue.models.cache import ResolveOptions
from adfatigue.models.date_range import DateRange, build_cache_key, normalize_account_id
from adfatigue.models.fatigue import FatigueAssessment
from adfatigue.models.metrics import MetricsPayload
from adfatigue.scoring.baseline import compute_baseline
from adfatigue.scoring.fatigue_scorer import FatigueScorer
from adfatigue.scoring.trend import TrendProjector

logger = get_logger(__name__)

# Ad platform client: (account_id, date_range) -> metrics payload (model or dict)
MetricsFetcher = Callable[[str, DateRange], Awaitable[Any]]


def parse_payload(raw: Any) -> MetricsPayload:
    """
    Validate a raw origin payload.

    Raises:
        OriginMalformedError: If the payload is not a valid MetricsPayload
    """
    if isinstance(raw, MetricsPayload):
        return raw
    try:
        return MetricsPayload.model_validate(raw)
    except (pydantic.ValidationError, InvalidMetricsError) as e:
        raise OriginMalformedError.from_exception(e, message="Origin returned an invalid metrics payload")


class FatigueAssessmentService:
    """
    Usage:
        service = FatigueAssessmentService(orchestrator)
        assessment = await service.assess("act_123", DateRange.parse("last_7d"), fetch_insights)
    """

    def __init__(
        self,
        orchestrator: CacheOrchestrator,
        scorer: FatigueScorer | None = None,
        projector: TrendProjector | None = None,
    ):
        self._orchestrator = orchestrator
        self._scorer = scorer or FatigueScorer()
        self._projector = projector or TrendProjector(self._scorer)

    @property
    def scorer(self) -> FatigueScorer:
        return self._scorer

    @property
    def projector(self) -> TrendProjector:
        return self._projector

    async def assess(
        self,
        account_id: str,
        date_range: DateRange,
        fetcher: MetricsFetcher,
        options: ResolveOptions | None = None,
    ) -> FatigueAssessment:
        """
        Resolve metrics for an account and range, then score them.

        Args:
            account_id: Ad account id (with or without "act_")
            date_range: Canonical date range
            fetcher: Ad platform client
            options: Resolve options passed to the orchestrator

        Returns:
            FatigueAssessment; score is None when the range holds no data,
            comparable is False when there is no history to compare against

        Raises:
            OriginError subclasses as raised by CacheOrchestrator.resolve()
        """
        account = normalize_account_id(account_id)
        key = build_cache_key(account, date_range)
        log_stage(logger, "ASSESS.1", "Assessing fatigue", cache_key=key)

        async def fetch(_: str) -> MetricsPayload:
            return parse_payload(await fetcher(account, date_range))

        result = await self._orchestrator.resolve(key, fetch, options)
        payload = parse_payload(result.data)
        points = payload.sorted_points()
        log_stage(
            logger, "ASSESS.2", "Metrics resolved",
            cache_key=key, source=result.source.value, stale=result.stale, points=len(points),
        )

        history = points[:-1]
        baseline = compute_baseline(history)

        score = self._scorer.score(points[-1].metrics, baseline) if points else None
        trend = self._projector.analyze(points)

        log_stage(
            logger, "ASSESS.4", "Assessment complete",
            cache_key=key,
            total_score=score.total_score if score else None,
            trend=trend.trend.value,
        )

        return FatigueAssessment(
            account_id=account,
            since=date_range.since,
            until=date_range.until,
            score=score,
            baseline=baseline,
            trend=trend,
            source=CacheSource(result.source),
            stale=result.stale,
            comparable=baseline.is_comparable,
            stats=result.stats,
        )
