"""
Scoring Module

- baseline.py: Median-based baseline of a historical window
- fatigue_scorer.py: Weighted creative/audience/algorithm fatigue score
- trend.py: Early-vs-recent trend with a 7-day linear projection
"""

from adfatigue.scoring.baseline import compute_baseline
from adfatigue.scoring.fatigue_scorer import FatigueScorer
from adfatigue.scoring.trend import TrendProjector

__all__ = ["FatigueScorer", "TrendProjector", "compute_baseline"]
