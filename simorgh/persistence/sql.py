"""
SQLAlchemy persistence adapter.

Every write touches exactly one row. Inside a transaction the record and
summary rows are read with SELECT ... FOR UPDATE (a no-op on SQLite, which
serializes writers itself), so two reviews for the same learner cannot
interleave their read-modify-write cycles on a multi-user backend.
"""

from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from loguru import logger
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from simorgh.core.errors import StorageError
from simorgh.core.models import ContentType, ProgressSummary, ReviewRecord, ensure_aware

from .base import PersistenceAdapter, check_owner
from .orm import Base, ProgressSummaryRow, ReviewRecordRow


def _to_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return ensure_aware(value).astimezone(timezone.utc)


def _from_db(value: datetime | None) -> datetime | None:
    # SQLite returns naive datetimes; everything is stored as UTC
    if value is None:
        return None
    return ensure_aware(value)


def _record_from_row(row: ReviewRecordRow) -> ReviewRecord:
    return ReviewRecord(
        learner_id=row.learner_id,
        content_id=row.content_id,
        content_type=ContentType(row.content_type),
        interval_days=row.interval_days,
        ease_factor=row.ease_factor,
        due_at=_from_db(row.due_at),
        correct_streak=row.correct_streak,
        incorrect_count=row.incorrect_count,
        last_seen_at=_from_db(row.last_seen_at),
        review_count=row.review_count,
    )


def _summary_from_row(row: ProgressSummaryRow) -> ProgressSummary:
    return ProgressSummary(
        learner_id=row.learner_id,
        total_reviews=row.total_reviews,
        correct_reviews=row.correct_reviews,
        last_study_date=row.last_study_date,
        streak_days=row.streak_days,
        points=row.points,
        level=row.level,
        reviews_today=row.reviews_today,
        correct_today=row.correct_today,
    )


class SessionStore:
    """Keyed record/summary access bound to one SQLAlchemy session."""

    def __init__(self, session: Session, lock_rows: bool = False):
        self.session = session
        self.lock_rows = lock_rows

    def _select_record(self, learner_id: str, content_id: str, content_type: ContentType):
        stmt = select(ReviewRecordRow).where(
            ReviewRecordRow.learner_id == learner_id,
            ReviewRecordRow.content_type == ContentType.parse(content_type).value,
            ReviewRecordRow.content_id == str(content_id),
        )
        if self.lock_rows:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def _select_summary(self, learner_id: str):
        stmt = select(ProgressSummaryRow).where(ProgressSummaryRow.learner_id == learner_id)
        if self.lock_rows:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def load_records(self, learner_id: str) -> list[ReviewRecord]:
        stmt = (
            select(ReviewRecordRow)
            .where(ReviewRecordRow.learner_id == learner_id)
            .order_by(ReviewRecordRow.id)
        )
        return [_record_from_row(row) for row in self.session.execute(stmt).scalars()]

    def load_record(
        self, learner_id: str, content_id: str, content_type: ContentType
    ) -> ReviewRecord | None:
        row = self._select_record(learner_id, content_id, content_type)
        return _record_from_row(row) if row is not None else None

    def save_record(self, learner_id: str, record: ReviewRecord) -> None:
        check_owner(learner_id, record)
        row = self._select_record(learner_id, record.content_id, record.content_type)
        if row is None:
            row = ReviewRecordRow(
                learner_id=learner_id,
                content_type=record.content_type.value,
                content_id=record.content_id,
            )
            self.session.add(row)

        row.interval_days = record.interval_days
        row.ease_factor = record.ease_factor
        row.due_at = _to_utc(record.due_at)
        row.correct_streak = record.correct_streak
        row.incorrect_count = record.incorrect_count
        row.review_count = record.review_count
        row.last_seen_at = _to_utc(record.last_seen_at)
        self.session.flush()

    def load_summary(self, learner_id: str) -> ProgressSummary:
        row = self._select_summary(learner_id)
        if row is None:
            return ProgressSummary(learner_id=learner_id)
        return _summary_from_row(row)

    def save_summary(self, learner_id: str, summary: ProgressSummary) -> None:
        row = self._select_summary(learner_id)
        if row is None:
            row = ProgressSummaryRow(learner_id=learner_id)
            self.session.add(row)

        row.total_reviews = summary.total_reviews
        row.correct_reviews = summary.correct_reviews
        row.last_study_date = summary.last_study_date
        row.streak_days = summary.streak_days
        row.points = summary.points
        row.level = summary.level
        row.reviews_today = summary.reviews_today
        row.correct_today = summary.correct_today
        self.session.flush()


class SqlAlchemyAdapter(PersistenceAdapter):
    """
    Relational storage for review records and progress summaries.

    Works with any SQLAlchemy URL; SQLite is the default for local use and
    PostgreSQL for the multi-user backend.
    """

    def __init__(self, database_url: str | None = None, engine: Engine | None = None, echo: bool = False):
        """
        Args:
            database_url: SQLAlchemy connection string (ignored if engine given)
            engine: Pre-built engine to use
            echo: Log SQL statements
        """
        if engine is None:
            if database_url is None:
                raise ValueError("database_url or engine is required")
            engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def init_db(self) -> None:
        """Create tables that don't exist yet."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create review tables: {e}")
            raise StorageError("init_db", cause=e) from e
        logger.info("Review tables initialized")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:  # Intentionally broad - rollback on any error before re-raising
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def _guard(self, operation: str, learner_id: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"{operation} failed for learner {learner_id}: {e}")
            raise StorageError(operation, learner_id=learner_id, cause=e) from e

    # =========================================================================
    # PersistenceAdapter
    # =========================================================================

    def load_records(self, learner_id: str) -> list[ReviewRecord]:
        with self._guard("load_records", learner_id), self.session_scope() as session:
            return SessionStore(session).load_records(learner_id)

    def load_record(
        self, learner_id: str, content_id: str, content_type: ContentType
    ) -> ReviewRecord | None:
        with self._guard("load_record", learner_id), self.session_scope() as session:
            return SessionStore(session).load_record(learner_id, content_id, content_type)

    def save_record(self, learner_id: str, record: ReviewRecord) -> None:
        with self._guard("save_record", learner_id), self.session_scope() as session:
            SessionStore(session, lock_rows=True).save_record(learner_id, record)

    def load_summary(self, learner_id: str) -> ProgressSummary:
        with self._guard("load_summary", learner_id), self.session_scope() as session:
            return SessionStore(session).load_summary(learner_id)

    def save_summary(self, learner_id: str, summary: ProgressSummary) -> None:
        with self._guard("save_summary", learner_id), self.session_scope() as session:
            SessionStore(session, lock_rows=True).save_summary(learner_id, summary)

    @contextmanager
    def transaction(self, learner_id: str) -> Iterator[SessionStore]:
        with self._guard("transaction", learner_id), self.session_scope() as session:
            yield SessionStore(session, lock_rows=True)

    def close(self) -> None:
        self.engine.dispose()
