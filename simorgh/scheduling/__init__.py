"""
Spaced-repetition scheduling: policies, the scheduler and due-queue selection.
"""

from .due_queue import index_records, select_due, study_stats, weak_items
from .policies import (
    BooleanPolicy,
    GradedPolicy,
    ReviewOutcome,
    SchedulingPolicy,
    build_policy,
    quality_from_response,
)
from .scheduler import Scheduler

__all__ = [
    "BooleanPolicy",
    "GradedPolicy",
    "ReviewOutcome",
    "Scheduler",
    "SchedulingPolicy",
    "build_policy",
    "index_records",
    "quality_from_response",
    "select_due",
    "study_stats",
    "weak_items",
]
