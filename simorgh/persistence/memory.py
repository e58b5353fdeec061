"""
In-memory persistence adapter.

Suitable for tests, offline use and single-process deployments. Each learner
owns a separate record table keyed by (content type, content id) plus one
summary, and a lock of its own. A learner's table is only read or written
under that learner's lock, so reviews for different learners never wait on
or interfere with each other.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from copy import deepcopy

from loguru import logger

from simorgh.core.errors import ValidationError
from simorgh.core.models import ContentType, ProgressSummary, ReviewRecord

from .base import PersistenceAdapter, check_owner

RecordKey = tuple[ContentType, str]


def _record_key(content_id: str, content_type: ContentType | str) -> RecordKey:
    return (ContentType.parse(content_type), str(content_id))


class _StagedTransaction:
    """Reads through to the adapter, buffers writes until commit."""

    def __init__(self, adapter: InMemoryAdapter, learner_id: str):
        self._adapter = adapter
        self._learner_id = learner_id
        self._records: dict[RecordKey, ReviewRecord] = {}
        self._summary: ProgressSummary | None = None

    def _check_learner(self, learner_id: str) -> None:
        if learner_id != self._learner_id:
            raise ValidationError(
                f"transaction is bound to learner {self._learner_id}, not {learner_id}",
                field="learner_id",
            )

    def load_records(self, learner_id: str) -> list[ReviewRecord]:
        self._check_learner(learner_id)
        merged = {r.key: r for r in self._adapter._read_records(learner_id)}
        for record in self._records.values():
            merged[record.key] = deepcopy(record)
        return list(merged.values())

    def load_record(
        self, learner_id: str, content_id: str, content_type: ContentType
    ) -> ReviewRecord | None:
        self._check_learner(learner_id)
        staged = self._records.get(_record_key(content_id, content_type))
        if staged is not None:
            return deepcopy(staged)
        return self._adapter._read_record(learner_id, content_id, content_type)

    def save_record(self, learner_id: str, record: ReviewRecord) -> None:
        self._check_learner(learner_id)
        check_owner(learner_id, record)
        self._records[(record.content_type, record.content_id)] = deepcopy(record)

    def load_summary(self, learner_id: str) -> ProgressSummary:
        self._check_learner(learner_id)
        if self._summary is not None:
            return deepcopy(self._summary)
        return self._adapter._read_summary(learner_id)

    def save_summary(self, learner_id: str, summary: ProgressSummary) -> None:
        self._check_learner(learner_id)
        self._summary = deepcopy(summary)

    def commit(self) -> None:
        self._adapter._apply(self._learner_id, self._records, self._summary)


class InMemoryAdapter(PersistenceAdapter):
    """Dictionary-backed adapter with per-learner tables and locks."""

    def __init__(self):
        self._records: dict[str, dict[RecordKey, ReviewRecord]] = {}
        self._summaries: dict[str, ProgressSummary] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, learner_id: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(learner_id)
            if lock is None:
                lock = self._locks[learner_id] = threading.RLock()
            return lock

    def _table(self, learner_id: str) -> dict[RecordKey, ReviewRecord]:
        # Caller holds the learner's lock
        with self._locks_guard:
            return self._records.setdefault(learner_id, {})

    # =========================================================================
    # Raw reads (copies, so callers never alias stored state)
    # =========================================================================

    def _read_records(self, learner_id: str) -> list[ReviewRecord]:
        return [deepcopy(record) for record in self._table(learner_id).values()]

    def _read_record(
        self, learner_id: str, content_id: str, content_type: ContentType
    ) -> ReviewRecord | None:
        record = self._table(learner_id).get(_record_key(content_id, content_type))
        return deepcopy(record) if record is not None else None

    def _read_summary(self, learner_id: str) -> ProgressSummary:
        summary = self._summaries.get(learner_id)
        if summary is None:
            return ProgressSummary(learner_id=learner_id)
        return deepcopy(summary)

    def _apply(
        self,
        learner_id: str,
        records: dict[RecordKey, ReviewRecord],
        summary: ProgressSummary | None,
    ) -> None:
        self._table(learner_id).update(records)
        if summary is not None:
            self._summaries[learner_id] = summary

    # =========================================================================
    # PersistenceAdapter
    # =========================================================================

    def load_records(self, learner_id: str) -> list[ReviewRecord]:
        with self._lock_for(learner_id):
            return self._read_records(learner_id)

    def load_record(
        self, learner_id: str, content_id: str, content_type: ContentType
    ) -> ReviewRecord | None:
        with self._lock_for(learner_id):
            return self._read_record(learner_id, content_id, content_type)

    def save_record(self, learner_id: str, record: ReviewRecord) -> None:
        check_owner(learner_id, record)
        with self._lock_for(learner_id):
            self._table(learner_id)[(record.content_type, record.content_id)] = deepcopy(record)

    def load_summary(self, learner_id: str) -> ProgressSummary:
        with self._lock_for(learner_id):
            return self._read_summary(learner_id)

    def save_summary(self, learner_id: str, summary: ProgressSummary) -> None:
        with self._lock_for(learner_id):
            self._summaries[learner_id] = deepcopy(summary)

    @contextmanager
    def transaction(self, learner_id: str) -> Iterator[_StagedTransaction]:
        with self._lock_for(learner_id):
            tx = _StagedTransaction(self, learner_id)
            yield tx
            tx.commit()
            logger.debug(
                f"Committed {len(tx._records)} record(s) for learner {learner_id} (memory)"
            )
