"""
Unit tests for due-queue selection and study statistics.
"""

from dataclasses import replace
from datetime import timedelta

import pytest

from simorgh.core.errors import ValidationError
from simorgh.core.models import Candidate, ContentType, ReviewRecord
from simorgh.scheduling.due_queue import index_records, select_due, study_stats, weak_items


def _record(content_id, due_at, content_type=ContentType.FLASHCARD, **kwargs):
    return ReviewRecord(
        learner_id="learner-1",
        content_id=content_id,
        content_type=content_type,
        interval_days=1,
        due_at=due_at,
        **kwargs,
    )


@pytest.fixture
def candidates():
    return [Candidate.of(f"card-{i}", "flashcard") for i in range(5)]


class TestSelectDue:
    def test_only_due_items_earliest_first(self, candidates, now):
        records = [
            _record("card-0", now + timedelta(days=2)),
            _record("card-1", now - timedelta(hours=1)),
            _record("card-2", now + timedelta(days=1)),
            _record("card-3", now - timedelta(days=3)),
            _record("card-4", now + timedelta(hours=5)),
        ]

        due = select_due(candidates, records, limit=10, now=now)

        assert [c.id for c in due] == ["card-3", "card-1"]

    def test_never_returns_future_items(self, candidates, now):
        records = [_record(c.id, now + timedelta(seconds=1)) for c in candidates]
        assert select_due(candidates, records, limit=10, now=now) == []

    def test_due_exactly_now_is_included(self, candidates, now):
        records = [_record("card-0", now)]
        due = select_due(candidates[:1], records, limit=10, now=now)
        assert [c.id for c in due] == ["card-0"]

    def test_unseen_items_are_due_first(self, candidates, now):
        records = [_record("card-0", now - timedelta(days=100))]

        due = select_due(candidates[:2], records, limit=10, now=now)

        # card-1 has no record, so it is due since the epoch
        assert [c.id for c in due] == ["card-1", "card-0"]

    def test_ties_keep_input_order(self, now):
        same = now - timedelta(days=1)
        items = [Candidate.of(x, "phrase") for x in ["c", "a", "b"]]
        records = [_record(x, same, ContentType.PHRASE) for x in ["a", "b", "c"]]

        due = select_due(items, records, limit=10, now=now)

        assert [c.id for c in due] == ["c", "a", "b"]

    def test_unseen_ties_keep_input_order(self, candidates, now):
        due = select_due(list(reversed(candidates)), [], limit=10, now=now)
        assert [c.id for c in due] == [f"card-{i}" for i in range(4, -1, -1)]

    def test_limit_truncates(self, candidates, now):
        due = select_due(candidates, [], limit=3, now=now)
        assert len(due) == 3

    def test_zero_limit(self, candidates, now):
        assert select_due(candidates, [], limit=0, now=now) == []

    def test_negative_limit_rejected(self, candidates, now):
        with pytest.raises(ValidationError):
            select_due(candidates, [], limit=-1, now=now)

    def test_records_matched_by_type(self, now):
        # Same id, different content type: the phrase record must not apply to the vocabulary item
        vocab = Candidate.of("hallo", "vocabulary")
        records = [_record("hallo", now + timedelta(days=5), ContentType.PHRASE)]

        assert select_due([vocab], records, limit=10, now=now) == [vocab]

    def test_accepts_indexed_records(self, candidates, now):
        records = index_records([_record("card-0", now + timedelta(days=1))])
        due = select_due(candidates[:1], records, limit=10, now=now)
        assert due == []

    def test_sorted_ascending(self, now):
        items = [Candidate.of(str(i), "flashcard") for i in range(20)]
        records = [
            _record(str(i), now - timedelta(hours=(i * 7) % 13)) for i in range(20)
        ]

        due = select_due(items, records, limit=20, now=now)
        by_id = {r.content_id: r.due_at for r in records}
        due_times = [by_id[c.id] for c in due]

        assert due_times == sorted(due_times)


class TestStudyStats:
    def test_empty(self, now):
        stats = study_stats([], now)
        assert stats.total_items == 0
        assert stats.average_success_rate == 0.0

    def test_counts(self, now):
        records = [
            _record("a", now - timedelta(days=1), review_count=4, incorrect_count=1),
            _record("b", now + timedelta(days=3), review_count=2, incorrect_count=0),
            replace(_record("c", None), interval_days=0),
        ]

        stats = study_stats(records, now)

        assert stats.total_items == 3
        assert stats.due_items == 2  # "a" overdue, "c" never reviewed
        assert stats.learned_items == 1
        assert stats.average_success_rate == pytest.approx((0.75 + 1.0) / 2)
        assert stats.weak_items == 0
        assert stats.reviewed_today == 0

    def test_counts_weak_items(self, now):
        records = [
            _record("a", now, review_count=3, incorrect_count=2),
            _record("b", now, review_count=4, incorrect_count=0),
        ]
        assert study_stats(records, now).weak_items == 1


class TestWeakItems:
    def test_selects_low_success_items_weakest_first(self, now):
        records = [
            _record("ok", now, review_count=5, incorrect_count=1),
            _record("bad", now, review_count=4, incorrect_count=2),
            _record("worst", now, review_count=3, incorrect_count=3),
        ]

        weak = weak_items(records)

        assert [r.content_id for r in weak] == ["worst", "bad"]

    def test_needs_enough_reviews(self, now):
        records = [_record("new", now, review_count=2, incorrect_count=2)]
        assert weak_items(records) == []
        assert [r.content_id for r in weak_items(records, min_reviews=2)] == ["new"]

    def test_success_rate_at_threshold_is_not_weak(self, now):
        records = [_record("edge", now, review_count=5, incorrect_count=2)]
        assert weak_items(records) == []
        assert len(weak_items(records, threshold=0.7)) == 1

    def test_ties_keep_input_order(self, now):
        records = [
            _record(x, now, review_count=3, incorrect_count=2) for x in ["c", "a", "b"]
        ]
        assert [r.content_id for r in weak_items(records)] == ["c", "a", "b"]
