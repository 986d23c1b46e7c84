"""
Baseline Estimator

STAGE-SCORE.1: Baseline computation

The baseline is the per-metric median of a historical window, so a
single spend spike or one throttled measurement cannot drag it the way a
mean would. Each metric is sorted independently and the value at index
floor(n / 2) is taken.
"""

from collections.abc import Callable, Iterable
from datetime import datetime

from adfatigue.core.logging.logger import get_logger, log_stage
from adfatigue.models.cache import utc_now
from adfatigue.models.metrics import AdMetrics, BaselineMetrics, MetricsPoint

logger = get_logger(__name__)


def _median_high(values: list[float]) -> float:
    return sorted(values)[len(values) // 2]


def compute_baseline(
    history: Iterable[AdMetrics | MetricsPoint],
    clock: Callable[[], datetime] = utc_now,
) -> BaselineMetrics:
    """
    Compute a robust baseline from historical metrics.

    Args:
        history: Metrics rows (or dated points) from the reference window
        clock: Source of calculated_at

    Returns:
        BaselineMetrics; all zeros with data_points == 0 for empty history
    """
    rows = [item.metrics if isinstance(item, MetricsPoint) else item for item in history]

    if not rows:
        return BaselineMetrics(calculated_at=clock(), data_points=0)

    baseline = BaselineMetrics(
        ctr=_median_high([row.ctr for row in rows]),
        cpm=_median_high([row.cpm for row in rows]),
        frequency=_median_high([row.frequency for row in rows]),
        calculated_at=clock(),
        data_points=len(rows),
    )
    log_stage(
        logger, "SCORE.1", "Baseline computed", level="debug",
        data_points=baseline.data_points, ctr=baseline.ctr, cpm=baseline.cpm,
    )
    return baseline
