"""
Core data model for the review scheduler.

Design:
- ContentType: the kinds of learning content that can be scheduled
- Candidate: an (id, type) pair supplied by the content provider
- ReviewRecord: scheduling state for one (learner, content item)
- ProgressSummary: per-learner gamification counters

All timestamps are timezone-aware UTC datetimes. A record that has never
been reviewed has ``due_at = None`` and is treated as due since EPOCH.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from enum import Enum

from .errors import ValidationError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

INITIAL_EASE_FACTOR = 2.5
MINIMUM_EASE_FACTOR = 1.3

# Reviews needed before an item counts as learned
LEARNED_REVIEW_COUNT = 3

# Success rate below which a well-practised item counts as weak
WEAK_SUCCESS_RATE = 0.6


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def calendar_date(value: datetime, tz: tzinfo) -> date:
    """Calendar day of ``value`` as seen in ``tz``."""
    return ensure_aware(value).astimezone(tz).date()


class ContentType(str, Enum):
    """Kind of content a review record belongs to."""

    VOCABULARY = "vocabulary"
    PHRASE = "phrase"
    FLASHCARD = "flashcard"

    @classmethod
    def parse(cls, value: ContentType | str) -> ContentType:
        """
        Convert a string to a ContentType.

        Accepts the short ``vocab`` spelling used by the mobile app.

        Raises:
            ValidationError: If the value is not a known content type
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        if normalized == "vocab":
            return cls.VOCABULARY
        try:
            return cls(normalized)
        except ValueError:
            allowed = ", ".join(t.value for t in cls)
            raise ValidationError(
                f"Unknown content type {value!r} (expected one of: {allowed})",
                field="content_type",
            ) from None


@dataclass(frozen=True)
class Candidate:
    """A content item eligible for review."""

    id: str
    type: ContentType

    @classmethod
    def of(cls, content_id: str, content_type: ContentType | str) -> Candidate:
        return cls(id=str(content_id), type=ContentType.parse(content_type))

    @property
    def key(self) -> tuple[str, ContentType]:
        return (self.id, self.type)


@dataclass
class ReviewRecord:
    """Scheduling state for a single content item of a single learner."""

    learner_id: str
    content_id: str
    content_type: ContentType
    interval_days: int = 0
    ease_factor: float = INITIAL_EASE_FACTOR
    due_at: datetime | None = None  # None = never reviewed, due since EPOCH
    correct_streak: int = 0
    incorrect_count: int = 0
    last_seen_at: datetime | None = None
    review_count: int = 0

    @classmethod
    def new(
        cls,
        learner_id: str,
        content_id: str,
        content_type: ContentType | str,
        ease_factor: float = INITIAL_EASE_FACTOR,
    ) -> ReviewRecord:
        """Create the lazily-initialized record for an unseen item."""
        return cls(
            learner_id=learner_id,
            content_id=str(content_id),
            content_type=ContentType.parse(content_type),
            ease_factor=ease_factor,
        )

    @property
    def key(self) -> tuple[str, ContentType]:
        """Identity of the record within its learner."""
        return (self.content_id, self.content_type)

    @property
    def effective_due_at(self) -> datetime:
        """Due timestamp, with never-reviewed records due since EPOCH."""
        if self.due_at is None:
            return EPOCH
        return ensure_aware(self.due_at)

    def is_due(self, now: datetime | None = None) -> bool:
        """Check if this record is due for review."""
        return self.effective_due_at <= ensure_aware(now or utcnow())

    def days_overdue(self, now: datetime | None = None) -> int:
        """Whole days past the scheduled review time (0 if not overdue or never seen)."""
        if self.due_at is None:
            return 0
        delta = ensure_aware(now or utcnow()) - ensure_aware(self.due_at)
        return max(0, delta.days)

    @property
    def success_rate(self) -> float:
        """Share of reviews since the last reset that were correct."""
        if self.review_count == 0:
            return 0.0
        return max(0, self.review_count - self.incorrect_count) / self.review_count

    @property
    def is_learned(self) -> bool:
        return self.review_count >= LEARNED_REVIEW_COUNT

    def is_weak(
        self,
        threshold: float = WEAK_SUCCESS_RATE,
        min_reviews: int = LEARNED_REVIEW_COUNT,
    ) -> bool:
        """Reviewed often enough to judge, but answered correctly too rarely."""
        return self.review_count >= min_reviews and self.success_rate < threshold

    def check_invariants(self) -> None:
        """
        Validate the record's field invariants.

        Raises:
            ValidationError: If any invariant is violated
        """
        if self.interval_days < 0:
            raise ValidationError("interval_days must be >= 0", field="interval_days")
        if self.ease_factor < MINIMUM_EASE_FACTOR:
            raise ValidationError(
                f"ease_factor must be >= {MINIMUM_EASE_FACTOR}", field="ease_factor"
            )
        if self.correct_streak < 0 or self.incorrect_count < 0 or self.review_count < 0:
            raise ValidationError("counters must be >= 0")
        if self.last_seen_at is not None and self.due_at is not None:
            expected = ensure_aware(self.last_seen_at) + timedelta(days=self.interval_days)
            if ensure_aware(self.due_at) != expected:
                raise ValidationError(
                    "due_at must equal last_seen_at + interval_days", field="due_at"
                )


@dataclass
class ProgressSummary:
    """Per-learner review totals, streak and gamification state."""

    learner_id: str
    total_reviews: int = 0
    correct_reviews: int = 0
    last_study_date: date | None = None
    streak_days: int = 0
    points: int = 0
    level: int = 1
    reviews_today: int = 0  # on last_study_date
    correct_today: int = 0

    @property
    def accuracy(self) -> float:
        """Correct reviews as a fraction of all reviews."""
        if self.total_reviews == 0:
            return 0.0
        return self.correct_reviews / self.total_reviews


@dataclass(frozen=True)
class StudyStats:
    """Aggregate view over a learner's review records and today's activity."""

    total_items: int
    due_items: int
    learned_items: int
    average_success_rate: float
    weak_items: int = 0
    reviewed_today: int = 0
    correct_today: int = 0
