"""
Persistence adapters for review records and progress summaries.
"""

from .base import PersistenceAdapter, ReviewStore
from .memory import InMemoryAdapter
from .sql import SqlAlchemyAdapter

__all__ = [
    "InMemoryAdapter",
    "PersistenceAdapter",
    "ReviewStore",
    "SqlAlchemyAdapter",
]
