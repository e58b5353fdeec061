"""
Unit tests for the Scheduler.

Tests the review/reset operations and the worked scenarios:
new item -> next day -> failure.
"""

from datetime import timedelta

import pytest

from simorgh.core.errors import ValidationError
from simorgh.scheduling.policies import BooleanPolicy
from simorgh.scheduling.scheduler import Scheduler


@pytest.fixture
def scheduler(clock):
    return Scheduler(clock=clock)


class TestReview:
    def test_new_item_quality_4(self, scheduler, new_record, now):
        record = scheduler.review(new_record, 4, now)

        assert record.interval_days == 1
        assert record.due_at == now + timedelta(days=1)
        assert record.ease_factor >= 2.5

    def test_next_day_quality_5(self, scheduler, new_record, now):
        first = scheduler.review(new_record, 4, now)
        next_day = now + timedelta(days=1)
        second = scheduler.review(first, 5, next_day)

        assert second.interval_days == 6
        assert second.due_at == next_day + timedelta(days=6)

    def test_failure_after_six_days(self, scheduler, new_record, now):
        record = scheduler.review(new_record, 5, now)
        record = scheduler.review(record, 5, now)
        assert record.interval_days == 6

        failed = scheduler.review(record, 1, now + timedelta(days=6))

        assert failed.interval_days == 1
        assert failed.correct_streak == 0
        assert failed.incorrect_count == record.incorrect_count + 1

    def test_uses_clock_when_now_omitted(self, scheduler, new_record, clock):
        record = scheduler.review(new_record, 5)
        assert record.last_seen_at == clock.now

    def test_invalid_quality_raises_before_mutation(self, scheduler, new_record, now):
        with pytest.raises(ValidationError):
            scheduler.review(new_record, 6, now)
        assert new_record.review_count == 0
        assert new_record.due_at is None

    def test_boolean_policy(self, clock, new_record, now):
        scheduler = Scheduler(policy=BooleanPolicy(), clock=clock)
        record = scheduler.review(new_record, True, now)
        record = scheduler.review(record, True, now)
        assert record.interval_days == 2


class TestReset:
    def test_reset_values(self, scheduler, new_record, now):
        record = scheduler.review(new_record, 5, now)
        record = scheduler.review(record, 1, now)

        reset = scheduler.reset(record, now)

        assert reset.interval_days == 1
        assert reset.ease_factor == 2.5
        assert reset.correct_streak == 0
        assert reset.incorrect_count == 0
        assert reset.review_count == 0
        assert reset.last_seen_at is None
        assert reset.due_at == now + timedelta(days=1)

    def test_reset_is_idempotent(self, scheduler, new_record, now):
        record = scheduler.review(new_record, 5, now)

        once = scheduler.reset(record, now)
        twice = scheduler.reset(once, now)

        assert once == twice

    def test_reset_unseen_item(self, scheduler, new_record, now):
        reset = scheduler.reset(new_record, now)
        assert not reset.is_due(now)
        assert reset.is_due(now + timedelta(days=1))

    def test_review_after_reset_starts_over(self, scheduler, new_record, now):
        record = new_record
        for _ in range(3):
            record = scheduler.review(record, 5, now)
        record = scheduler.reset(record, now)

        record = scheduler.review(record, 4, now)
        assert record.interval_days == 1
        record = scheduler.review(record, 4, now)
        assert record.interval_days == 6
