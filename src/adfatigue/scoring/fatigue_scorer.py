#!/usr/bin/env python3
"""
Fatigue Scorer

STAGE-SCORE.2: Fatigue scoring

Turns current metrics plus a baseline into a weighted 0-100 risk score.

Sub-scores (each piecewise linear, clamped to [0, 100]):
- Creative: CTR decline vs. baseline (%)
- Audience: absolute frequency
- Algorithm: CPM increase vs. baseline (%)

total = round(creative * w_creative + audience * w_audience + algorithm * w_algorithm)

Status: <= 30 healthy, <= 60 warning, otherwise critical.

Rounding is half-up at every step, so a score of x.5 always rounds up.

Author: System Architect
Date: 2025-12-11
"""

import math
from collections.abc import Mapping

from adfatigue.core.config.constants import (
    ALGORITHM_CURVE_PIVOT,
    ALGORITHM_MINOR_INCREASE,
    ALGORITHM_SEVERE_INCREASE,
    AUDIENCE_GOOD_FREQUENCY,
    AUDIENCE_HEALTHY_FREQUENCY,
    AUDIENCE_SATURATED_FREQUENCY,
    CREATIVE_CURVE_PIVOT,
    CREATIVE_MINOR_DECLINE,
    CREATIVE_SEVERE_DECLINE,
    RECOMMEND_CPM_INCREASE_SEVERE,
    RECOMMEND_CTR_DECLINE_SEVERE,
    RECOMMEND_FREQUENCY_CAP,
    RECOMMEND_PROMPT_TOTAL,
    RECOMMEND_SUBSCORE_HIGH,
    RECOMMEND_SUBSCORE_MEDIUM,
    RECOMMEND_URGENT_TOTAL,
    STATUS_HEALTHY_MAX,
    STATUS_WARNING_MAX,
    FatigueStatus,
)
from adfatigue.core.config.settings import FatigueSettings, get_settings
from adfatigue.core.exceptions import ConfigurationError
from adfatigue.core.logging.logger import get_logger, log_stage
from adfatigue.infrastructure.monitoring.metrics_collector import get_metrics_collector
from adfatigue.models.fatigue import FatigueDetails, FatigueScore, FatigueSubScores
from adfatigue.models.metrics import AdMetrics, BaselineMetrics

logger = get_logger(__name__)

# Recommendation messages
MSG_URGENT = "Urgent action needed: this ad is severely fatigued"
MSG_PROMPT = "Act soon: performance is dropping noticeably"
MSG_REFRESH_CREATIVE = "Produce a new creative"
MSG_CTR_COLLAPSE = "CTR has dropped sharply; refreshing the ad content is urgent"
MSG_ADD_VARIATIONS = "Consider adding creative variations"
MSG_EXPAND_TARGETING = "Broaden targeting to reach new audiences"
MSG_TIGHTEN_FREQUENCY_CAP = "Tighten the frequency cap"
MSG_REVIEW_SEGMENTS = "Review audience segments"
MSG_PAUSE_AND_REFRESH = "Consider pausing the ad for a refresh period"
MSG_REVISIT_BIDDING = "CPM is rising sharply; revisit the bidding strategy"
MSG_OPTIMIZE_BIDS = "Optimize bid amounts"


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _clamp(score: int) -> int:
    return max(0, min(100, score))


class FatigueScorer:
    """
    Weighted fatigue scoring.

    Usage:
        scorer = FatigueScorer()
        score = scorer.score(current_metrics, baseline)
        score.total_score, score.status, score.recommendations
    """

    def __init__(self, config: FatigueSettings | None = None):
        """
        Args:
            config: Thresholds and weights (default from settings)

        Raises:
            ConfigurationError: If all weights are zero
        """
        self._config = config or get_settings().fatigue
        self._metrics = get_metrics_collector()
        self._weights = self._resolve_weights()

    def _resolve_weights(self) -> tuple[float, float, float]:
        weights = (
            self._config.FATIGUE_WEIGHT_CREATIVE,
            self._config.FATIGUE_WEIGHT_AUDIENCE,
            self._config.FATIGUE_WEIGHT_ALGORITHM,
        )
        total = sum(weights)

        if total <= 0:
            raise ConfigurationError("Fatigue weights must not all be zero")

        if math.isclose(total, 1.0, abs_tol=1e-6):
            return weights

        if self._config.FATIGUE_NORMALIZE_WEIGHTS:
            logger.warning("Fatigue weights do not sum to 1.0, normalizing", stage="SCORE.0", weight_sum=total)
            return tuple(w / total for w in weights)

        logger.warning("Fatigue weights do not sum to 1.0, using as given", stage="SCORE.0", weight_sum=total)
        return weights

    @property
    def weights(self) -> dict[str, float]:
        creative, audience, algorithm = self._weights
        return {"creative": creative, "audience": audience, "algorithm": algorithm}

    # -------------------------------------------------------------------------
    # Sub-scores
    # -------------------------------------------------------------------------

    def creative_score(self, current_ctr: float, baseline_ctr: float) -> int:
        """CTR decline curve. A zero baseline means no comparison: 0."""
        if baseline_ctr == 0:
            return 0

        decline = (baseline_ctr - current_ctr) / baseline_ctr * 100

        if decline <= 0:
            return 0
        if decline < CREATIVE_MINOR_DECLINE:
            return _clamp(round_half_up(decline * 2))
        if decline < self._config.FATIGUE_CTR_DECLINE_THRESHOLD:
            return _clamp(round_half_up(decline * 2.5))
        if decline <= CREATIVE_SEVERE_DECLINE:
            return _clamp(round_half_up(60 + (decline - CREATIVE_CURVE_PIVOT) * 1.6))
        return _clamp(round_half_up(80 + (decline - CREATIVE_SEVERE_DECLINE) * 0.4))

    def audience_score(self, frequency: float) -> int:
        """Frequency curve; non-decreasing in frequency."""
        danger = self._config.FATIGUE_FREQUENCY_DANGER_LEVEL

        if frequency <= AUDIENCE_HEALTHY_FREQUENCY:
            return 0
        if frequency <= AUDIENCE_GOOD_FREQUENCY:
            return _clamp(round_half_up((frequency - 1) * 20))
        if frequency <= danger:
            return _clamp(round_half_up(20 + (frequency - 2) * 30))

        # each band is floored at the top of the band before it
        floor = 20 + (danger - 2) * 30
        if frequency <= AUDIENCE_SATURATED_FREQUENCY:
            return _clamp(round_half_up(max(floor, 65 + (frequency - danger) * 20)))

        floor = max(floor, 65 + (AUDIENCE_SATURATED_FREQUENCY - danger) * 20)
        tail = 85 + (frequency - AUDIENCE_SATURATED_FREQUENCY) * 5
        return _clamp(round_half_up(max(floor, tail)))

    def algorithm_score(self, current_cpm: float, baseline_cpm: float) -> int:
        """CPM increase curve. A zero baseline means no comparison: 0."""
        if baseline_cpm == 0:
            return 0

        increase = (current_cpm - baseline_cpm) / baseline_cpm * 100

        if increase <= 0:
            return 0
        if increase < ALGORITHM_MINOR_INCREASE:
            return _clamp(round_half_up(increase * 2))
        if increase < self._config.FATIGUE_CPM_INCREASE_THRESHOLD:
            return _clamp(round_half_up(increase * 2.5))
        if increase < ALGORITHM_SEVERE_INCREASE:
            return _clamp(round_half_up(50 + (increase - ALGORITHM_CURVE_PIVOT) * 2))
        return _clamp(round_half_up(90 + (increase - ALGORITHM_SEVERE_INCREASE) * 0.25))

    # -------------------------------------------------------------------------
    # Total
    # -------------------------------------------------------------------------

    @staticmethod
    def status_for(total_score: int) -> FatigueStatus:
        if total_score <= STATUS_HEALTHY_MAX:
            return FatigueStatus.HEALTHY
        if total_score <= STATUS_WARNING_MAX:
            return FatigueStatus.WARNING
        return FatigueStatus.CRITICAL

    def score(self, current: AdMetrics, baseline: BaselineMetrics) -> FatigueScore:
        """
        Score current metrics against a baseline.

        Args:
            current: Metrics to assess
            baseline: Reference (see compute_baseline)

        Returns:
            FatigueScore with sub-scores, details and ordered recommendations
        """
        scores = FatigueSubScores(
            creative=self.creative_score(current.ctr, baseline.ctr),
            audience=self.audience_score(current.frequency),
            algorithm=self.algorithm_score(current.cpm, baseline.cpm),
        )

        weighted = self._weighted(scores)
        total = _clamp(round_half_up(weighted))

        details = FatigueDetails(
            ctr_decline=(baseline.ctr - current.ctr) / baseline.ctr * 100 if baseline.ctr > 0 else 0.0,
            frequency_level=current.frequency,
            cpm_increase=(current.cpm - baseline.cpm) / baseline.cpm * 100 if baseline.cpm > 0 else 0.0,
        )

        result = FatigueScore(
            total_score=total,
            status=self.status_for(total),
            scores=scores,
            details=details,
            recommendations=self._recommendations(scores, details, weighted),
        )

        self._metrics.record_score(result.status.value)
        log_stage(
            logger, "SCORE.2", "Fatigue scored", level="debug",
            total_score=total, status=result.status.value,
        )
        return result

    def score_batch(
        self, items: Mapping[str, AdMetrics], baseline: BaselineMetrics
    ) -> dict[str, FatigueScore]:
        """Score several ads (id -> metrics) against one baseline."""
        return {item_id: self.score(metrics, baseline) for item_id, metrics in items.items()}

    def _weighted(self, scores: FatigueSubScores) -> float:
        creative, audience, algorithm = self._weights
        return scores.creative * creative + scores.audience * audience + scores.algorithm * algorithm

    @staticmethod
    def _recommendations(
        scores: FatigueSubScores, details: FatigueDetails, weighted: float
    ) -> list[str]:
        recommendations = []

        if scores.creative > RECOMMEND_SUBSCORE_HIGH:
            recommendations.append(MSG_REFRESH_CREATIVE)
            if details.ctr_decline > RECOMMEND_CTR_DECLINE_SEVERE:
                recommendations.append(MSG_CTR_COLLAPSE)
        elif scores.creative > RECOMMEND_SUBSCORE_MEDIUM:
            recommendations.append(MSG_ADD_VARIATIONS)

        if scores.audience > RECOMMEND_SUBSCORE_HIGH:
            recommendations.append(MSG_EXPAND_TARGETING)
            if details.frequency_level > RECOMMEND_FREQUENCY_CAP:
                recommendations.append(MSG_TIGHTEN_FREQUENCY_CAP)
        elif scores.audience > RECOMMEND_SUBSCORE_MEDIUM:
            recommendations.append(MSG_REVIEW_SEGMENTS)

        if scores.algorithm > RECOMMEND_SUBSCORE_HIGH:
            recommendations.append(MSG_PAUSE_AND_REFRESH)
            if details.cpm_increase > RECOMMEND_CPM_INCREASE_SEVERE:
                recommendations.append(MSG_REVISIT_BIDDING)
        elif scores.algorithm > RECOMMEND_SUBSCORE_MEDIUM:
            recommendations.append(MSG_OPTIMIZE_BIDS)

        if weighted > RECOMMEND_URGENT_TOTAL:
            recommendations.insert(0, MSG_URGENT)
        elif weighted > RECOMMEND_PROMPT_TOTAL:
            recommendations.insert(0, MSG_PROMPT)

        return recommendations
