"""
Review Service - public surface of the scheduler.

Wires the scheduler, the progress aggregator and a persistence adapter:

- submit_review: schedule one item and update the learner's progress together
- get_due_items: due candidates, earliest first
- reset_item: return one item to its initial schedule
- get_summary / get_study_stats / get_weak_items: read-only progress views
- clear_history: start the learner's progress summary over

The adapter is injected; nothing here reaches for a global store.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from loguru import logger

from simorgh.core.errors import StorageError, ValidationError
from simorgh.core.models import (
    LEARNED_REVIEW_COUNT,
    WEAK_SUCCESS_RATE,
    Candidate,
    ContentType,
    ProgressSummary,
    ReviewRecord,
    StudyStats,
    ensure_aware,
    utcnow,
)
from simorgh.persistence.base import PersistenceAdapter
from simorgh.progress.aggregator import ProgressAggregator
from simorgh.scheduling.due_queue import select_due, study_stats, weak_items
from simorgh.scheduling.policies import ReviewOutcome, build_policy
from simorgh.scheduling.scheduler import Scheduler


@dataclass(frozen=True)
class ReviewResult:
    """State after a submitted review."""

    record: ReviewRecord
    summary: ProgressSummary


def _require_id(value: str, field: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"{field} must not be empty", field=field)
    return text


def as_candidate(item: Candidate | Mapping[str, Any] | tuple[str, str]) -> Candidate:
    """
    Normalize a content-provider item to a Candidate.

    Accepts Candidate instances, ``{"id": ..., "type": ...}`` mappings and
    ``(id, type)`` tuples.
    """
    if isinstance(item, Candidate):
        return item
    if isinstance(item, Mapping):
        try:
            return Candidate.of(item["id"], item["type"])
        except KeyError as e:
            raise ValidationError(f"candidate is missing {e.args[0]!r}", field="candidates") from None
    content_id, content_type = item
    return Candidate.of(content_id, content_type)


class ReviewService:
    """Coordinates scheduling, progress and persistence for all learners."""

    def __init__(
        self,
        store: PersistenceAdapter,
        scheduler: Scheduler | None = None,
        aggregator: ProgressAggregator | None = None,
        clock: Callable[[], datetime] = utcnow,
        default_due_limit: int = 10,
    ):
        """
        Args:
            store: Persistence adapter for records and summaries
            scheduler: Scheduler with the active policy (graded SM-2 if None)
            aggregator: Progress aggregator (defaults if None)
            clock: Source of the current time
            default_due_limit: Limit used by get_due_items when none is given
        """
        self.store = store
        self.scheduler = scheduler or Scheduler(clock=clock)
        self.aggregator = aggregator or ProgressAggregator(clock=clock)
        self.clock = clock
        self.default_due_limit = default_due_limit

    def _now(self, now: datetime | None) -> datetime:
        return ensure_aware(now) if now is not None else self.clock()

    # =========================================================================
    # Write paths: storage failures always propagate
    # =========================================================================

    def submit_review(
        self,
        learner_id: str,
        content_id: str,
        content_type: ContentType | str,
        outcome: ReviewOutcome | bool | int,
        now: datetime | None = None,
    ) -> ReviewResult:
        """
        Record a review of one item.

        The item's record is created on first review. The record and the
        learner's summary are saved in one transaction.

        Raises:
            ValidationError: Bad ids, content type or outcome (nothing is written)
            StorageError: The adapter could not load or save state
        """
        learner_id = _require_id(learner_id, "learner_id")
        content_id = _require_id(content_id, "content_id")
        kind = ContentType.parse(content_type)
        checked = self.scheduler.check_outcome(outcome)
        current = self._now(now)

        with self.store.transaction(learner_id) as tx:
            record = tx.load_record(learner_id, content_id, kind)
            if record is None:
                record = self.scheduler.new_record(learner_id, content_id, kind)
            summary = tx.load_summary(learner_id)

            updated = self.scheduler.review(record, checked, current)
            new_summary = self.aggregator.record_review(summary, checked.was_correct, current)

            tx.save_record(learner_id, updated)
            tx.save_summary(learner_id, new_summary)

        logger.info(
            f"Review saved: learner={learner_id} item={kind.value}:{content_id} "
            f"correct={checked.was_correct} next_in={updated.interval_days}d "
            f"points={new_summary.points} streak={new_summary.streak_days}"
        )
        return ReviewResult(record=updated, summary=new_summary)

    def reset_item(
        self,
        learner_id: str,
        content_id: str,
        content_type: ContentType | str,
        now: datetime | None = None,
    ) -> ReviewRecord:
        """
        Reset one item to its initial schedule (due tomorrow).

        Unseen items are initialized and reset. The summary is untouched.
        """
        learner_id = _require_id(learner_id, "learner_id")
        content_id = _require_id(content_id, "content_id")
        kind = ContentType.parse(content_type)
        current = self._now(now)

        with self.store.transaction(learner_id) as tx:
            record = tx.load_record(learner_id, content_id, kind)
            if record is None:
                record = self.scheduler.new_record(learner_id, content_id, kind)
            reset = self.scheduler.reset(record, current)
            tx.save_record(learner_id, reset)

        logger.info(f"Reset {kind.value}:{content_id} for learner {learner_id}")
        return reset

    def clear_history(self, learner_id: str) -> ProgressSummary:
        """Replace the learner's summary with a fresh one. Records are kept."""
        learner_id = _require_id(learner_id, "learner_id")
        fresh = self.aggregator.new_summary(learner_id)
        self.store.save_summary(learner_id, fresh)
        logger.info(f"Cleared progress history for learner {learner_id}")
        return fresh

    # =========================================================================
    # Read paths: a failed load falls back to a fresh learner state
    # =========================================================================

    def _records_or_empty(self, learner_id: str) -> list[ReviewRecord]:
        try:
            return self.store.load_records(learner_id)
        except StorageError as e:
            logger.warning(f"Could not load records for {learner_id}, treating as new learner: {e}")
            return []

    def get_due_items(
        self,
        learner_id: str,
        candidates: Iterable[Candidate | Mapping[str, Any] | tuple[str, str]],
        limit: int | None = None,
        now: datetime | None = None,
    ) -> list[Candidate]:
        """
        Due candidates for a learner, earliest due first.

        Args:
            learner_id: Learner identifier
            candidates: Items supplied by the content provider
            limit: Maximum items (default_due_limit if None)
            now: Reference time (clock time if None)
        """
        learner_id = _require_id(learner_id, "learner_id")
        items = [as_candidate(c) for c in candidates]
        limit = self.default_due_limit if limit is None else limit
        if limit < 0:
            raise ValidationError(f"limit must be >= 0, got {limit}", field="limit")

        records = self._records_or_empty(learner_id)
        due = select_due(items, records, limit, self._now(now))
        logger.debug(f"{len(due)} of {len(items)} candidates due for learner {learner_id}")
        return due

    def get_summary(self, learner_id: str) -> ProgressSummary:
        """The learner's progress summary."""
        learner_id = _require_id(learner_id, "learner_id")
        try:
            return self.store.load_summary(learner_id)
        except StorageError as e:
            logger.warning(f"Could not load summary for {learner_id}, returning defaults: {e}")
            return self.aggregator.new_summary(learner_id)

    def get_study_stats(self, learner_id: str, now: datetime | None = None) -> StudyStats:
        """Item counts, average success rate and today's reviews for a learner."""
        learner_id = _require_id(learner_id, "learner_id")
        current = self._now(now)
        stats = study_stats(self._records_or_empty(learner_id), current)
        reviewed, correct = self.aggregator.today_progress(self.get_summary(learner_id), current)
        return replace(stats, reviewed_today=reviewed, correct_today=correct)

    def get_weak_items(
        self,
        learner_id: str,
        threshold: float | None = None,
        min_reviews: int | None = None,
    ) -> list[ReviewRecord]:
        """
        Items the learner keeps getting wrong, weakest first.

        Args:
            learner_id: Learner identifier
            threshold: Success rate below which an item is weak (0.6 if None)
            min_reviews: Reviews needed before an item is judged (3 if None)
        """
        learner_id = _require_id(learner_id, "learner_id")
        threshold = WEAK_SUCCESS_RATE if threshold is None else threshold
        min_reviews = LEARNED_REVIEW_COUNT if min_reviews is None else min_reviews
        if not 0 <= threshold <= 1:
            raise ValidationError(f"threshold must be between 0 and 1, got {threshold}", field="threshold")
        if min_reviews < 1:
            raise ValidationError(f"min_reviews must be >= 1, got {min_reviews}", field="min_reviews")
        return weak_items(self._records_or_empty(learner_id), threshold, min_reviews)


def build_service(settings, store: PersistenceAdapter | None = None) -> ReviewService:
    """
    Build a ReviewService from settings.

    Args:
        settings: Settings instance (see config.Settings)
        store: Adapter to use (SqlAlchemyAdapter on settings.database_url if None)
    """
    if store is None:
        from simorgh.persistence.sql import SqlAlchemyAdapter

        store = SqlAlchemyAdapter(settings.database_url, echo=settings.log_level == "DEBUG")
        store.init_db()

    scheduler = Scheduler(policy=build_policy(settings), initial_ease=settings.sm2_initial_ease)
    aggregator = ProgressAggregator(
        points_correct=settings.points_correct,
        points_incorrect=settings.points_incorrect,
        points_per_level=settings.points_per_level,
        tz=ZoneInfo(settings.study_timezone),
    )
    logger.debug(f"Review service using {scheduler.policy.name} policy")
    return ReviewService(
        store=store,
        scheduler=scheduler,
        aggregator=aggregator,
        default_due_limit=settings.default_due_limit,
    )
