"""
Review scheduler.

Applies the configured scheduling policy to one review record at a time.
The scheduler is pure: it never touches storage, callers persist the
returned record.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta

from loguru import logger

from simorgh.core.models import INITIAL_EASE_FACTOR, ReviewRecord, ensure_aware, utcnow

from .policies import GradedPolicy, ReviewOutcome, SchedulingPolicy


class Scheduler:
    """
    Computes the next state of a review record.

    Each record carries:
    - Interval: Days until next review
    - Ease factor: How fast intervals grow (graded policy only, min 1.3)
    - Correct streak: Consecutive successful reviews
    """

    def __init__(
        self,
        policy: SchedulingPolicy | None = None,
        initial_ease: float = INITIAL_EASE_FACTOR,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the scheduler.

        Args:
            policy: Scheduling policy (GradedPolicy if None)
            initial_ease: Ease factor restored by reset
            clock: Source of the current time
        """
        self.policy = policy or GradedPolicy()
        self.initial_ease = initial_ease
        self.clock = clock

    def _now(self, now: datetime | None) -> datetime:
        return ensure_aware(now) if now is not None else self.clock()

    def new_record(self, learner_id: str, content_id: str, content_type) -> ReviewRecord:
        """Record for an item the learner has never reviewed."""
        return ReviewRecord.new(learner_id, content_id, content_type, ease_factor=self.initial_ease)

    def check_outcome(self, outcome: ReviewOutcome | bool | int) -> ReviewOutcome:
        """
        Validate an outcome against the active policy without scheduling.

        Raises:
            ValidationError: If the outcome is rejected
        """
        return self.policy.interpret(outcome)

    def review(
        self,
        record: ReviewRecord,
        outcome: ReviewOutcome | bool | int,
        now: datetime | None = None,
    ) -> ReviewRecord:
        """
        Calculate the record's next state after a review.

        Args:
            record: Current record (left unmodified)
            outcome: Quality 0-5, a boolean, or a ReviewOutcome
            now: Review time (clock time if None)

        Returns:
            Updated ReviewRecord with new interval, ease factor and due time

        Raises:
            ValidationError: If the outcome is invalid for the policy
        """
        checked = self.policy.interpret(outcome)
        updated = self.policy.apply(record, checked, self._now(now))

        logger.debug(
            f"Scheduled {record.content_type.value}:{record.content_id} for {record.learner_id} "
            f"({self.policy.name}): correct={checked.was_correct}, "
            f"interval={record.interval_days}d -> {updated.interval_days}d, "
            f"ef={updated.ease_factor:.2f}, due={updated.due_at.isoformat()}"
        )
        return updated

    def reset(self, record: ReviewRecord, now: datetime | None = None) -> ReviewRecord:
        """
        Return a record to its initial configuration.

        The item becomes due one day from now; the progress summary is not
        affected.
        """
        current = self._now(now)
        logger.debug(f"Resetting {record.content_type.value}:{record.content_id} for {record.learner_id}")
        return replace(
            record,
            interval_days=1,
            ease_factor=self.initial_ease,
            correct_streak=0,
            incorrect_count=0,
            review_count=0,
            due_at=current + timedelta(days=1),
            last_seen_at=None,
        )
