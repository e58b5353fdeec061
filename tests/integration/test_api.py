"""
Integration tests for the HTTP API.

Exercises the learner endpoints through FastAPI's TestClient with an
in-memory store and a fixed clock.
"""

import pytest
from fastapi.testclient import TestClient

from simorgh.api.main import create_app
from simorgh.persistence.memory import InMemoryAdapter
from simorgh.persistence.sql import SqlAlchemyAdapter
from simorgh.service import ReviewService

pytestmark = pytest.mark.integration

BASE = "/api/learners/alice"


@pytest.fixture
def client(clock):
    service = ReviewService(store=InMemoryAdapter(), clock=clock)
    with TestClient(create_app(service=service)) as test_client:
        yield test_client


def _review(client, content_id="haus", content_type="vocabulary", **body):
    return client.post(
        f"{BASE}/reviews",
        json={"content_id": content_id, "content_type": content_type, **body},
    )


class TestReviews:
    def test_graded_review(self, client):
        response = _review(client, quality=4)

        assert response.status_code == 200
        data = response.json()
        assert data["record"]["interval_days"] == 1
        assert data["record"]["content_type"] == "vocabulary"
        assert data["record"]["due_at"].startswith("2026-03-11T09:00:00")
        assert data["summary"]["points"] == 10
        assert data["summary"]["streak_days"] == 1
        assert data["summary"]["last_study_date"] == "2026-03-10"

    def test_boolean_review_on_graded_service(self, client):
        response = _review(client, correct=False)
        assert response.status_code == 422
        assert response.json()["field"] == "quality"

    def test_correct_with_response_time(self, client):
        response = _review(client, correct=True, response_ms=2000)

        assert response.status_code == 200
        assert response.json()["summary"]["correct_reviews"] == 1

    def test_quality_out_of_range(self, client):
        response = _review(client, quality=7)

        assert response.status_code == 422
        assert response.json()["field"] == "quality"
        assert client.get(f"{BASE}/summary").json()["total_reviews"] == 0

    def test_missing_outcome(self, client):
        response = _review(client)
        assert response.status_code == 422

    def test_unknown_content_type(self, client):
        response = _review(client, content_type="grammar", quality=3)

        assert response.status_code == 422
        assert response.json()["field"] == "content_type"


class TestDue:
    def test_due_items(self, client):
        _review(client, content_id="seen", quality=5)

        response = client.post(
            f"{BASE}/due",
            json={
                "candidates": [
                    {"id": "seen", "type": "vocabulary"},
                    {"id": "new", "type": "phrase"},
                ],
                "limit": 5,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["items"] == [{"id": "new", "type": "phrase"}]

    def test_negative_limit(self, client):
        response = client.post(
            f"{BASE}/due",
            json={"candidates": [{"id": "a", "type": "flashcard"}], "limit": -1},
        )
        assert response.status_code == 422


class TestResetAndProgress:
    def test_reset(self, client):
        _review(client, quality=5)

        response = client.post(f"{BASE}/items/vocabulary/haus/reset")

        assert response.status_code == 200
        data = response.json()
        assert data["interval_days"] == 1
        assert data["ease_factor"] == 2.5
        assert data["last_seen_at"] is None

    def test_summary_and_clear(self, client):
        _review(client, quality=5)
        _review(client, content_id="katze", quality=1)

        summary = client.get(f"{BASE}/summary").json()
        assert summary["total_reviews"] == 2
        assert summary["points"] == 14
        assert summary["accuracy"] == 0.5

        cleared = client.delete(f"{BASE}/summary")
        assert cleared.status_code == 200
        assert cleared.json()["points"] == 0
        assert client.get(f"{BASE}/summary").json()["level"] == 1

    def test_unknown_learner_summary(self, client):
        data = client.get("/api/learners/nobody/summary").json()
        assert data["total_reviews"] == 0
        assert data["last_study_date"] is None

    def test_stats(self, client):
        _review(client, content_id="a", content_type="flashcard", quality=5)
        _review(client, content_id="b", content_type="flashcard", quality=2)

        data = client.get(f"{BASE}/stats").json()

        assert data["total_items"] == 2
        assert data["due_items"] == 0
        assert data["average_success_rate"] == 0.5
        assert data["weak_items"] == 0
        assert data["reviewed_today"] == 2
        assert data["correct_today"] == 1

    def test_weak_items(self, client):
        for quality in [5, 1, 1]:
            _review(client, content_id="schwer", content_type="flashcard", quality=quality)
        for quality in [5, 5, 5]:
            _review(client, content_id="leicht", content_type="flashcard", quality=quality)

        data = client.get(f"{BASE}/weak-items").json()

        assert data["count"] == 1
        assert data["items"][0]["content_id"] == "schwer"
        assert client.get(f"{BASE}/stats").json()["weak_items"] == 1

    def test_weak_items_bad_threshold(self, client):
        response = client.get(f"{BASE}/weak-items", params={"threshold": 1.5})
        assert response.status_code == 422


class TestHealth:
    def test_health(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["policy"] == "graded"

    def test_root(self, client):
        assert client.get("/").json()["service"] == "simorgh-review"


def test_storage_failure_returns_503(tmp_path, clock):
    adapter = SqlAlchemyAdapter(f"sqlite:///{tmp_path / 'empty.db'}")
    client = TestClient(create_app(service=ReviewService(store=adapter, clock=clock)))

    response = _review(client, quality=4)

    assert response.status_code == 503
    assert response.json()["operation"] == "transaction"
    adapter.close()


class _CloseTrackingAdapter(InMemoryAdapter):
    def __init__(self):
        super().__init__()
        self.closed = False

    def close(self) -> None:
        self.closed = True


def test_lifespan_leaves_injected_store_open(clock):
    store = _CloseTrackingAdapter()
    app = create_app(service=ReviewService(store=store, clock=clock))

    with TestClient(app) as client:
        assert client.get("/health").json()["status"] == "healthy"

    assert app.state.review_service.store is store
    assert not store.closed
