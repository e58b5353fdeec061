"""
Due-queue selection.

Given the candidates supplied by the content provider and the learner's
review records, returns the candidates that are due now, earliest first.
Also summarizes the records and picks out the weak ones.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime

from simorgh.core.errors import ValidationError
from simorgh.core.models import (
    EPOCH,
    LEARNED_REVIEW_COUNT,
    WEAK_SUCCESS_RATE,
    Candidate,
    ContentType,
    ReviewRecord,
    StudyStats,
    ensure_aware,
    utcnow,
)

RecordIndex = Mapping[tuple[str, ContentType], ReviewRecord]


def index_records(records: Iterable[ReviewRecord]) -> dict[tuple[str, ContentType], ReviewRecord]:
    """Key records by (content_id, content_type)."""
    return {record.key: record for record in records}


def select_due(
    candidates: Iterable[Candidate],
    records: RecordIndex | Iterable[ReviewRecord],
    limit: int,
    now: datetime | None = None,
) -> list[Candidate]:
    """
    Select the candidates that are due for review.

    Candidates without a record have never been reviewed and count as due
    since EPOCH. Ties on due time keep the input order.

    Args:
        candidates: Items eligible for review
        records: The learner's records, either indexed or as a plain iterable
        limit: Maximum number of items returned
        now: Reference time (current time if None)

    Returns:
        Due candidates sorted by due time, at most ``limit`` of them

    Raises:
        ValidationError: If limit is negative
    """
    if limit < 0:
        raise ValidationError(f"limit must be >= 0, got {limit}", field="limit")
    if limit == 0:
        return []

    if not isinstance(records, Mapping):
        records = index_records(records)
    current = ensure_aware(now or utcnow())

    due: list[tuple[datetime, Candidate]] = []
    for candidate in candidates:
        record = records.get(candidate.key)
        due_at = record.effective_due_at if record is not None else EPOCH
        if due_at <= current:
            due.append((due_at, candidate))

    # list.sort is stable: equal due times keep candidate order
    due.sort(key=lambda pair: pair[0])
    return [candidate for _, candidate in due[:limit]]


def weak_items(
    records: Iterable[ReviewRecord],
    threshold: float = WEAK_SUCCESS_RATE,
    min_reviews: int = LEARNED_REVIEW_COUNT,
) -> list[ReviewRecord]:
    """
    Records the learner keeps getting wrong.

    An item is weak once it has at least ``min_reviews`` reviews and a
    success rate below ``threshold``. Weakest first; ties keep input order.
    """
    weak = [record for record in records if record.is_weak(threshold, min_reviews)]
    weak.sort(key=lambda record: record.success_rate)
    return weak


def study_stats(records: Iterable[ReviewRecord], now: datetime | None = None) -> StudyStats:
    """
    Summarize a learner's records.

    Returns:
        StudyStats with total, due, learned and weak item counts and the
        mean success rate over reviewed items (day counters left at 0)
    """
    current = ensure_aware(now or utcnow())
    total = due = learned = weak = 0
    rates: list[float] = []

    for record in records:
        total += 1
        if record.is_due(current):
            due += 1
        if record.is_learned:
            learned += 1
        if record.is_weak():
            weak += 1
        if record.review_count > 0:
            rates.append(record.success_rate)

    return StudyStats(
        total_items=total,
        due_items=due,
        learned_items=learned,
        average_success_rate=sum(rates) / len(rates) if rates else 0.0,
        weak_items=weak,
    )
