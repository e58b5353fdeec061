"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from simorgh.core.models import ContentType, ReviewRecord  # noqa: E402
from simorgh.persistence.memory import InMemoryAdapter  # noqa: E402
from simorgh.persistence.sql import SqlAlchemyAdapter  # noqa: E402
from simorgh.service import ReviewService  # noqa: E402

FIXED_NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (service + storage)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FakeClock:
    """Settable clock for deterministic scheduling."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        from datetime import timedelta

        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def new_record():
    """An item the learner has never reviewed."""
    return ReviewRecord.new("learner-1", "haus", ContentType.VOCABULARY)


@pytest.fixture
def memory_adapter():
    return InMemoryAdapter()


@pytest.fixture
def sqlite_adapter(tmp_path):
    """SqlAlchemyAdapter on a temporary SQLite file with tables created."""
    adapter = SqlAlchemyAdapter(f"sqlite:///{tmp_path / 'reviews.db'}")
    adapter.init_db()
    yield adapter
    adapter.close()


@pytest.fixture
def service(memory_adapter, clock):
    """ReviewService over the in-memory adapter with a fake clock."""
    return ReviewService(store=memory_adapter, clock=clock)
