"""
SQLAlchemy table models for review state.

One row per (learner, content type, content id) review record and one row
per learner summary.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for scheduler tables."""


class ReviewRecordRow(Base):
    """Scheduling state for one learner and one content item."""

    __tablename__ = "review_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    learner_id: Mapped[str] = mapped_column(Text, nullable=False)
    content_type: Mapped[str] = mapped_column(Text, nullable=False)  # vocabulary | phrase | flashcard
    content_id: Mapped[str] = mapped_column(Text, nullable=False)

    # SM-2 / doubling state
    interval_days: Mapped[int] = mapped_column(Integer, default=0)
    ease_factor: Mapped[float] = mapped_column(Float, default=2.5)
    due_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Counters
    correct_streak: Mapped[int] = mapped_column(Integer, default=0)
    incorrect_count: Mapped[int] = mapped_column(Integer, default=0)
    review_count: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    last_seen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("learner_id", "content_type", "content_id", name="uq_learner_content"),
        Index("idx_review_records_due", "learner_id", "due_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ReviewRecordRow learner={self.learner_id} "
            f"item={self.content_type}:{self.content_id} interval={self.interval_days}>"
        )


class ProgressSummaryRow(Base):
    """Per-learner totals, streak, points and level."""

    __tablename__ = "progress_summaries"

    learner_id: Mapped[str] = mapped_column(Text, primary_key=True)
    total_reviews: Mapped[int] = mapped_column(Integer, default=0)
    correct_reviews: Mapped[int] = mapped_column(Integer, default=0)
    last_study_date: Mapped[date | None] = mapped_column(Date)
    streak_days: Mapped[int] = mapped_column(Integer, default=0)
    points: Mapped[int] = mapped_column(Integer, default=0)
    level: Mapped[int] = mapped_column(Integer, default=1)
    # Counters for last_study_date only
    reviews_today: Mapped[int] = mapped_column(Integer, default=0)
    correct_today: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<ProgressSummaryRow learner={self.learner_id} points={self.points} level={self.level}>"
