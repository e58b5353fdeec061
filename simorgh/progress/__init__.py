"""
Learner progress: review totals, daily streak, points and level.
"""

from .aggregator import ProgressAggregator, level_for_points, next_streak

__all__ = ["ProgressAggregator", "level_for_points", "next_streak"]
