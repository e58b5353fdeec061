"""
Persistence adapter contract.

Storage is keyed per record and per summary. No operation loads, mutates
and rewrites a whole collection, so concurrent reviews of different items
cannot overwrite each other.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Protocol

from simorgh.core.errors import ValidationError
from simorgh.core.models import ContentType, ProgressSummary, ReviewRecord


class ReviewStore(Protocol):
    """Keyed load/save operations shared by adapters and their transactions."""

    def load_records(self, learner_id: str) -> list[ReviewRecord]: ...

    def load_record(
        self, learner_id: str, content_id: str, content_type: ContentType
    ) -> ReviewRecord | None: ...

    def save_record(self, learner_id: str, record: ReviewRecord) -> None: ...

    def load_summary(self, learner_id: str) -> ProgressSummary: ...

    def save_summary(self, learner_id: str, summary: ProgressSummary) -> None: ...


class PersistenceAdapter(ABC):
    """
    Durable storage for review records and progress summaries.

    Implementations raise StorageError on failure. A missing summary is not
    a failure: load_summary returns a fresh one. A missing record is returned
    as None so callers can create it lazily.
    """

    @abstractmethod
    def load_records(self, learner_id: str) -> list[ReviewRecord]:
        """All records of a learner."""

    @abstractmethod
    def load_record(
        self, learner_id: str, content_id: str, content_type: ContentType
    ) -> ReviewRecord | None:
        """One record, or None if the learner never reviewed the item."""

    @abstractmethod
    def save_record(self, learner_id: str, record: ReviewRecord) -> None:
        """Insert or update a single record."""

    @abstractmethod
    def load_summary(self, learner_id: str) -> ProgressSummary:
        """The learner's summary (zero defaults if none stored)."""

    @abstractmethod
    def save_summary(self, learner_id: str, summary: ProgressSummary) -> None:
        """Insert or update the learner's summary."""

    @abstractmethod
    def transaction(self, learner_id: str) -> AbstractContextManager[ReviewStore]:
        """
        Atomic unit of work for one learner.

        Reads inside the block see the latest committed state; writes become
        visible together when the block exits cleanly and are discarded if it
        raises.
        """

    def close(self) -> None:
        """Release resources held by the adapter."""


def check_owner(learner_id: str, record: ReviewRecord) -> None:
    """Reject a record saved under another learner's id."""
    if record.learner_id != learner_id:
        raise ValidationError(
            f"record belongs to learner {record.learner_id}, not {learner_id}",
            field="learner_id",
        )
