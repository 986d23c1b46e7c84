"""
Trend Projector

STAGE-SCORE.3: Trend analysis

Compares the fatigue of the first and last thirds of a time series and
extrapolates linearly over TREND_PROJECTION_DAYS. The projection is a
naive first-order forecast; treat it as a direction hint, not a number
to plan budgets with.
"""

from collections.abc import Sequence

from adfatigue.core.config.constants import (
    TREND_CHANGE_THRESHOLD,
    TREND_PROJECTION_DAYS,
    TrendDirection,
)
from adfatigue.core.logging.logger import get_logger, log_stage
from adfatigue.models.fatigue import TrendAnalysis
from adfatigue.models.metrics import MetricsPoint
from adfatigue.scoring.baseline import compute_baseline
from adfatigue.scoring.fatigue_scorer import FatigueScorer

logger = get_logger(__name__)


class TrendProjector:
    """
    Usage:
        projector = TrendProjector(scorer)
        trend = projector.analyze(payload.sorted_points())
    """

    def __init__(self, scorer: FatigueScorer | None = None):
        self._scorer = scorer or FatigueScorer()

    def analyze(self, series: Sequence[MetricsPoint]) -> TrendAnalysis:
        """
        Args:
            series: Points in chronological order

        Returns:
            TrendAnalysis; (stable, 0, 0) for fewer than two points
        """
        n = len(series)
        if n < 2:
            return TrendAnalysis()

        # at least one point per window, even for very short series
        window = max(1, n // 3)
        early = series[:window]
        recent = series[-window:]

        early_score = self._scorer.score(early[0].metrics, compute_baseline(early))
        recent_score = self._scorer.score(recent[-1].metrics, compute_baseline(recent))

        change_rate = float(recent_score.total_score - early_score.total_score)

        if change_rate < -TREND_CHANGE_THRESHOLD:
            trend = TrendDirection.IMPROVING
        elif change_rate > TREND_CHANGE_THRESHOLD:
            trend = TrendDirection.DECLINING
        else:
            trend = TrendDirection.STABLE

        projection = recent_score.total_score + change_rate / n * TREND_PROJECTION_DAYS
        projection = max(0.0, min(100.0, projection))

        log_stage(
            logger, "SCORE.3", "Trend analyzed", level="debug",
            points=n, trend=trend.value, change_rate=change_rate,
        )
        return TrendAnalysis(trend=trend, change_rate=change_rate, projection=projection)
