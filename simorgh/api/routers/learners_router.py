"""
Learner review router.

Endpoints for submitting reviews, fetching the due queue, resetting items and
reading progress and weak items. Timestamps are ISO-8601; calendar dates are
YYYY-MM-DD.
"""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, Request
from loguru import logger
from pydantic import BaseModel, Field

from simorgh.core.errors import ValidationError
from simorgh.core.models import ProgressSummary, ReviewRecord, StudyStats
from simorgh.scheduling.policies import ReviewOutcome, quality_from_response
from simorgh.service import ReviewService

router = APIRouter()


def get_service(request: Request) -> ReviewService:
    """FastAPI dependency returning the app's review service."""
    return request.app.state.review_service


# ========================================
# Request/Response Models
# ========================================


class ReviewRequest(BaseModel):
    """A single review. Send ``quality`` (0-5) or ``correct``."""

    content_id: str = Field(..., description="Content item identifier")
    content_type: str = Field(..., description="vocabulary, phrase or flashcard")
    quality: int | None = Field(None, description="SM-2 recall quality 0-5")
    correct: bool | None = Field(None, description="Correct/incorrect signal")
    response_ms: int | None = Field(
        None, ge=0, description="Answer time; turns `correct` into a quality when given"
    )

    def to_outcome(self) -> ReviewOutcome | bool | int:
        if self.quality is not None:
            return self.quality
        if self.correct is None:
            raise ValidationError("either quality or correct is required", field="quality")
        if self.response_ms is not None:
            return quality_from_response(self.correct, self.response_ms)
        return self.correct


class RecordResponse(BaseModel):
    """Scheduling state of one content item."""

    learner_id: str
    content_id: str
    content_type: str
    interval_days: int
    ease_factor: float
    due_at: datetime | None
    correct_streak: int
    incorrect_count: int
    review_count: int
    last_seen_at: datetime | None

    @classmethod
    def from_record(cls, record: ReviewRecord) -> RecordResponse:
        return cls(
            learner_id=record.learner_id,
            content_id=record.content_id,
            content_type=record.content_type.value,
            interval_days=record.interval_days,
            ease_factor=round(record.ease_factor, 4),
            due_at=record.due_at,
            correct_streak=record.correct_streak,
            incorrect_count=record.incorrect_count,
            review_count=record.review_count,
            last_seen_at=record.last_seen_at,
        )


class SummaryResponse(BaseModel):
    """Learner progress summary."""

    learner_id: str
    total_reviews: int
    correct_reviews: int
    last_study_date: date | None
    streak_days: int
    points: int
    level: int
    accuracy: float

    @classmethod
    def from_summary(cls, summary: ProgressSummary) -> SummaryResponse:
        return cls(
            learner_id=summary.learner_id,
            total_reviews=summary.total_reviews,
            correct_reviews=summary.correct_reviews,
            last_study_date=summary.last_study_date,
            streak_days=summary.streak_days,
            points=summary.points,
            level=summary.level,
            accuracy=round(summary.accuracy, 4),
        )


class ReviewResponse(BaseModel):
    """Record and summary after a review."""

    record: RecordResponse
    summary: SummaryResponse


class CandidateModel(BaseModel):
    """Content item eligible for review."""

    id: str
    type: str


class DueRequest(BaseModel):
    """Candidates to filter down to the due queue."""

    candidates: list[CandidateModel] = Field(default_factory=list)
    limit: int | None = Field(None, description="Maximum items (server default if omitted)")


class DueResponse(BaseModel):
    """Due items, earliest due first."""

    items: list[CandidateModel]
    count: int


class StatsResponse(BaseModel):
    """Aggregate item statistics and today's activity."""

    total_items: int
    due_items: int
    learned_items: int
    average_success_rate: float
    weak_items: int
    reviewed_today: int
    correct_today: int

    @classmethod
    def from_stats(cls, stats: StudyStats) -> StatsResponse:
        return cls(
            total_items=stats.total_items,
            due_items=stats.due_items,
            learned_items=stats.learned_items,
            average_success_rate=round(stats.average_success_rate, 4),
            weak_items=stats.weak_items,
            reviewed_today=stats.reviewed_today,
            correct_today=stats.correct_today,
        )


class WeakItemsResponse(BaseModel):
    """Items answered correctly too rarely, weakest first."""

    items: list[RecordResponse]
    count: int


# ========================================
# Endpoints
# ========================================


@router.post("/{learner_id}/reviews", response_model=ReviewResponse, summary="Submit a review")
def submit_review(
    learner_id: str,
    body: ReviewRequest,
    service: ReviewService = Depends(get_service),
) -> ReviewResponse:
    """
    Record one review and return the item's new schedule with the updated summary.

    The item is created on its first review.
    """
    result = service.submit_review(
        learner_id, body.content_id, body.content_type, body.to_outcome()
    )
    return ReviewResponse(
        record=RecordResponse.from_record(result.record),
        summary=SummaryResponse.from_summary(result.summary),
    )


@router.post("/{learner_id}/due", response_model=DueResponse, summary="Get due items")
def get_due_items(
    learner_id: str,
    body: DueRequest,
    service: ReviewService = Depends(get_service),
) -> DueResponse:
    """Filter the candidates to those due now, earliest due first."""
    due = service.get_due_items(
        learner_id,
        [{"id": c.id, "type": c.type} for c in body.candidates],
        limit=body.limit,
    )
    items = [CandidateModel(id=c.id, type=c.type.value) for c in due]
    return DueResponse(items=items, count=len(items))


@router.post(
    "/{learner_id}/items/{content_type}/{content_id}/reset",
    response_model=RecordResponse,
    summary="Reset an item",
)
def reset_item(
    learner_id: str,
    content_type: str,
    content_id: str,
    service: ReviewService = Depends(get_service),
) -> RecordResponse:
    """Return an item to its initial schedule; progress is not affected."""
    return RecordResponse.from_record(service.reset_item(learner_id, content_id, content_type))


@router.get("/{learner_id}/summary", response_model=SummaryResponse, summary="Get progress summary")
def get_summary(
    learner_id: str,
    service: ReviewService = Depends(get_service),
) -> SummaryResponse:
    return SummaryResponse.from_summary(service.get_summary(learner_id))


@router.delete("/{learner_id}/summary", response_model=SummaryResponse, summary="Clear progress history")
def clear_history(
    learner_id: str,
    service: ReviewService = Depends(get_service),
) -> SummaryResponse:
    """Start the learner's progress over. Item schedules are kept."""
    logger.info(f"Clearing history for learner {learner_id} via API")
    return SummaryResponse.from_summary(service.clear_history(learner_id))


@router.get("/{learner_id}/stats", response_model=StatsResponse, summary="Get study statistics")
def get_study_stats(
    learner_id: str,
    service: ReviewService = Depends(get_service),
) -> StatsResponse:
    return StatsResponse.from_stats(service.get_study_stats(learner_id))


@router.get("/{learner_id}/weak-items", response_model=WeakItemsResponse, summary="Get weak items")
def get_weak_items(
    learner_id: str,
    threshold: float | None = Query(None, description="Success rate below which an item is weak"),
    min_reviews: int | None = Query(None, description="Reviews needed before an item is judged"),
    service: ReviewService = Depends(get_service),
) -> WeakItemsResponse:
    """Items with enough reviews but a low success rate."""
    records = service.get_weak_items(learner_id, threshold=threshold, min_reviews=min_reviews)
    items = [RecordResponse.from_record(r) for r in records]
    return WeakItemsResponse(items=items, count=len(items))
