"""
Progress aggregation.

Maintains the per-learner summary that is updated once per review event,
whatever scheduling policy produced the outcome:

- Totals: every review counts, correct ones separately
- Points: 10 for a correct review, 4 for an incorrect one
- Streak: consecutive calendar days with at least one review
- Level: one level per 100 points, starting at 1
- Today: reviews and correct answers on the current calendar day
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone, tzinfo

from loguru import logger

from simorgh.core.errors import ValidationError
from simorgh.core.models import ProgressSummary, calendar_date, utcnow


def level_for_points(points: int, points_per_level: int = 100) -> int:
    """Level derived from points (minimum 1)."""
    return max(1, points // points_per_level + 1)


def next_streak(last_study_date: date | None, streak_days: int, today: date) -> int:
    """
    Streak length after studying on ``today``.

    - First study ever: 1
    - Same day as last study: unchanged
    - Day after last study: +1
    - Any longer gap: back to 1
    """
    if last_study_date is None:
        return 1
    if last_study_date == today:
        return streak_days
    if last_study_date == today - timedelta(days=1):
        return streak_days + 1
    return 1


class ProgressAggregator:
    """Updates a learner's ProgressSummary for each review."""

    def __init__(
        self,
        points_correct: int = 10,
        points_incorrect: int = 4,
        points_per_level: int = 100,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Args:
            points_correct: Points for a correct review
            points_incorrect: Points for an incorrect review
            points_per_level: Points needed per level
            tz: Timezone that defines calendar days for the streak
            clock: Source of the current time
        """
        if points_correct < 0 or points_incorrect < 0:
            raise ValidationError("points per review must be >= 0", field="points")
        if points_per_level < 1:
            raise ValidationError("points_per_level must be >= 1", field="points_per_level")
        self.points_correct = points_correct
        self.points_incorrect = points_incorrect
        self.points_per_level = points_per_level
        self.tz = tz
        self.clock = clock

    def new_summary(self, learner_id: str) -> ProgressSummary:
        return ProgressSummary(learner_id=learner_id)

    def record_review(
        self,
        summary: ProgressSummary,
        was_correct: bool,
        now: datetime | None = None,
    ) -> ProgressSummary:
        """
        Fold one review into the summary.

        Args:
            summary: Current summary (left unmodified)
            was_correct: Whether the review was a success
            now: Review time (clock time if None)

        Returns:
            Updated ProgressSummary
        """
        today = calendar_date(now or self.clock(), self.tz)
        points = summary.points + (self.points_correct if was_correct else self.points_incorrect)
        streak = next_streak(summary.last_study_date, summary.streak_days, today)
        if summary.last_study_date == today:
            reviews_today, correct_today = summary.reviews_today, summary.correct_today
        else:
            reviews_today = correct_today = 0

        updated = replace(
            summary,
            total_reviews=summary.total_reviews + 1,
            correct_reviews=summary.correct_reviews + (1 if was_correct else 0),
            points=points,
            streak_days=streak,
            last_study_date=today,
            level=level_for_points(points, self.points_per_level),
            reviews_today=reviews_today + 1,
            correct_today=correct_today + (1 if was_correct else 0),
        )

        if updated.level > summary.level:
            logger.info(f"Learner {summary.learner_id} reached level {updated.level}")
        if streak != summary.streak_days:
            logger.debug(f"Learner {summary.learner_id} streak: {summary.streak_days} -> {streak} days")
        return updated

    def today_progress(self, summary: ProgressSummary, now: datetime | None = None) -> tuple[int, int]:
        """
        Reviews and correct answers on the current calendar day.

        The stored day counters belong to ``last_study_date``; on any later
        day nothing has been studied yet.
        """
        today = calendar_date(now or self.clock(), self.tz)
        if summary.last_study_date != today:
            return 0, 0
        return summary.reviews_today, summary.correct_today
