"""
Error taxonomy for the review scheduler.

- ValidationError: a review outcome, content type or limit is out of range.
  Raised before anything is mutated.
- StorageError: the persistence adapter failed to load or save state.
"""

from __future__ import annotations


class SimorghError(Exception):
    """Base class for all scheduler errors."""


class ValidationError(SimorghError, ValueError):
    """Raised when caller-supplied input is rejected."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class StorageError(SimorghError):
    """
    Raised when the persistence adapter cannot complete an operation.

    Attributes:
        operation: Adapter operation that failed (e.g. "save_record")
        learner_id: Learner whose state was being accessed, if known
    """

    def __init__(self, operation: str, learner_id: str | None = None, cause: Exception | None = None):
        self.operation = operation
        self.learner_id = learner_id
        self.cause = cause
        detail = f"{operation} failed"
        if learner_id is not None:
            detail += f" for learner {learner_id}"
        if cause is not None:
            detail += f": {cause}"
        super().__init__(detail)
