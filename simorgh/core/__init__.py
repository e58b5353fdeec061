"""
Core data model and error types shared by every scheduler component.
"""

from .errors import SimorghError, StorageError, ValidationError
from .models import (
    EPOCH,
    Candidate,
    ContentType,
    ProgressSummary,
    ReviewRecord,
    StudyStats,
    calendar_date,
    ensure_aware,
    utcnow,
)

__all__ = [
    # Errors
    "SimorghError",
    "StorageError",
    "ValidationError",
    # Models
    "EPOCH",
    "Candidate",
    "ContentType",
    "ProgressSummary",
    "ReviewRecord",
    "StudyStats",
    # Time helpers
    "calendar_date",
    "ensure_aware",
    "utcnow",
]
