"""
Scheduling policies for spaced repetition.

Two policies share one interface so the rest of the system never branches on
which variant is active:

- GradedPolicy: SM-2 driven by a 0-5 recall quality (multi-user backend)
- BooleanPolicy: interval doubling driven by correct/incorrect (offline app)

SM-2 Grade Scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from simorgh.core.errors import ValidationError
from simorgh.core.models import ReviewRecord

MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3


# =============================================================================
# Review Outcome
# =============================================================================


@dataclass(frozen=True)
class ReviewOutcome:
    """
    What the learner did on a single review.

    Exactly one of ``quality`` (graded 0-5) or ``correct`` (boolean) is set.
    """

    quality: int | None = None
    correct: bool | None = None

    @classmethod
    def from_quality(cls, quality: int) -> ReviewOutcome:
        """
        Build a graded outcome.

        Raises:
            ValidationError: If quality is not an integer in [0, 5]
        """
        if isinstance(quality, bool) or not isinstance(quality, int):
            if isinstance(quality, float) and quality.is_integer():
                quality = int(quality)
            else:
                raise ValidationError(
                    f"quality must be an integer between {MIN_QUALITY} and {MAX_QUALITY}, got {quality!r}",
                    field="quality",
                )
        if not MIN_QUALITY <= quality <= MAX_QUALITY:
            raise ValidationError(
                f"quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {quality}",
                field="quality",
            )
        return cls(quality=quality)

    @classmethod
    def from_bool(cls, correct: bool) -> ReviewOutcome:
        return cls(correct=bool(correct))

    @classmethod
    def coerce(cls, value: ReviewOutcome | bool | int) -> ReviewOutcome:
        """Normalize a raw outcome: bools are boolean outcomes, ints are qualities."""
        if isinstance(value, ReviewOutcome):
            if value.quality is not None:
                return cls.from_quality(value.quality)
            if value.correct is None:
                raise ValidationError("outcome has neither quality nor correct set", field="outcome")
            return value
        if isinstance(value, bool):
            return cls.from_bool(value)
        return cls.from_quality(value)

    @property
    def is_graded(self) -> bool:
        return self.quality is not None

    @property
    def was_correct(self) -> bool:
        """Whether the review counts as a success."""
        if self.quality is not None:
            return self.quality >= PASSING_QUALITY
        return bool(self.correct)


def quality_from_response(
    is_correct: bool,
    response_ms: int,
    expected_ms: int = 10000,
) -> int:
    """
    Convert a timed correct/incorrect response to an SM-2 quality.

    Args:
        is_correct: Whether the answer was correct
        response_ms: Time taken to respond
        expected_ms: Expected response time

    Returns:
        Quality 0-5
    """
    if not is_correct:
        if response_ms < expected_ms * 0.5:
            return 2  # Quick wrong = almost knew it
        elif response_ms < expected_ms:
            return 1
        else:
            return 0  # Blackout

    if response_ms < expected_ms * 0.5:
        return 5
    elif response_ms < expected_ms:
        return 4
    else:
        return 3


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return int(math.floor(value + 0.5))


# =============================================================================
# Policies
# =============================================================================


class SchedulingPolicy(ABC):
    """
    Strategy that turns (record, outcome) into the next record state.

    Subclasses only decide the new interval and ease factor; counters,
    timestamps and the interval cap are handled here.
    """

    name: str = "base"

    def __init__(self, max_interval_days: int | None = None):
        self.max_interval_days = max_interval_days

    def interpret(self, outcome: ReviewOutcome | bool | int) -> ReviewOutcome:
        """
        Validate an outcome for this policy.

        Raises:
            ValidationError: If the outcome is malformed or unsupported
        """
        return ReviewOutcome.coerce(outcome)

    @abstractmethod
    def next_interval(self, record: ReviewRecord, outcome: ReviewOutcome, new_streak: int) -> int:
        """Interval in days after this review, before the cap is applied."""

    def next_ease(self, record: ReviewRecord, outcome: ReviewOutcome) -> float:
        """Ease factor after this review (unchanged by default)."""
        return record.ease_factor

    def apply(self, record: ReviewRecord, outcome: ReviewOutcome, now: datetime) -> ReviewRecord:
        """Return the record as it stands after ``outcome`` was observed at ``now``."""
        success = outcome.was_correct
        if success:
            new_streak = record.correct_streak + 1
            incorrect = record.incorrect_count
        else:
            new_streak = 0
            incorrect = record.incorrect_count + 1

        interval = self.next_interval(record, outcome, new_streak)
        if self.max_interval_days is not None:
            interval = min(interval, self.max_interval_days)
        interval = max(1, interval)

        return replace(
            record,
            interval_days=interval,
            ease_factor=self.next_ease(record, outcome),
            correct_streak=new_streak,
            incorrect_count=incorrect,
            review_count=record.review_count + 1,
            last_seen_at=now,
            due_at=now + timedelta(days=interval),
        )


class GradedPolicy(SchedulingPolicy):
    """
    SM-2 scheduling from a 0-5 recall quality.

    - First success: 1 day, second consecutive success: 6 days
    - Later successes: previous interval * ease factor, rounded
    - Any failure: back to 1 day
    - Ease factor: EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored,
      applied on every review including failures
    """

    name = "graded"

    def __init__(
        self,
        minimum_ease: float = 1.3,
        first_interval: int = 1,
        second_interval: int = 6,
        max_interval_days: int | None = None,
    ):
        super().__init__(max_interval_days=max_interval_days)
        self.minimum_ease = minimum_ease
        self.first_interval = first_interval
        self.second_interval = second_interval

    def interpret(self, outcome: ReviewOutcome | bool | int) -> ReviewOutcome:
        result = super().interpret(outcome)
        if not result.is_graded:
            raise ValidationError(
                "graded scheduling requires a quality between 0 and 5, not a boolean",
                field="quality",
            )
        return result

    def next_interval(self, record: ReviewRecord, outcome: ReviewOutcome, new_streak: int) -> int:
        if not outcome.was_correct:
            return self.first_interval
        if new_streak == 1:
            return self.first_interval
        if new_streak == 2:
            return self.second_interval
        return round_half_up(record.interval_days * record.ease_factor)

    def next_ease(self, record: ReviewRecord, outcome: ReviewOutcome) -> float:
        q = outcome.quality
        ef_delta = 0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)
        return max(self.minimum_ease, record.ease_factor + ef_delta)


class BooleanPolicy(SchedulingPolicy):
    """
    Interval doubling from a correct/incorrect signal.

    Success doubles the previous interval (starting at 1 day) up to the cap;
    failure resets to 1 day. The ease factor is not used.
    """

    name = "boolean"

    def __init__(self, max_interval_days: int = 30):
        super().__init__(max_interval_days=max_interval_days)

    def next_interval(self, record: ReviewRecord, outcome: ReviewOutcome, new_streak: int) -> int:
        if not outcome.was_correct:
            return 1
        if record.interval_days == 0:
            return 1
        return record.interval_days * 2


def build_policy(settings) -> SchedulingPolicy:
    """
    Create the scheduling policy named in settings.

    Args:
        settings: Settings instance (see config.Settings)
    """
    if settings.scheduling_policy == "boolean":
        return BooleanPolicy(max_interval_days=settings.boolean_max_interval_days)
    if settings.scheduling_policy == "graded":
        return GradedPolicy(
            minimum_ease=settings.sm2_minimum_ease,
            first_interval=settings.sm2_first_interval,
            second_interval=settings.sm2_second_interval,
            max_interval_days=settings.graded_max_interval_days,
        )
    raise ValidationError(f"Unknown scheduling policy: {settings.scheduling_policy}")
