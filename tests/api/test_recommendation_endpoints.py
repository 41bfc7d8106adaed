"""
Tests for the recommendation, history, health and prewarm endpoints.

The real RecommendationService runs against in-memory fakes, injected
through FastAPI's dependency_overrides.
"""

from datetime import datetime, UTC
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.domain.entities import Book, SearchHistory
from app.domain.errors import EmbeddingError, EmbeddingErrorKind, ExternalServiceError
from app.domain.services import ExplanationGenerator, RecommendationService
from app.api.v1.dependencies import (
    get_explanation_generator,
    get_graph_store,
    get_history_store,
    get_recommendation_service,
    get_settings,
)
from app.main import app


# =============================================================================
# Fake implementations for testing
# =============================================================================


class FakeEmbedder:

    def __init__(self, error: Optional[EmbeddingError] = None):
        self._error = error

    def encode(self, text: str) -> List[float]:
        if self._error is not None:
            raise self._error
        return [0.5, 0.5, 0.5, 0.5]

    def get_dimension(self) -> int:
        return 4

    def is_ready(self) -> bool:
        return True


class FakeVectorIndex:

    def __init__(self, books: List[Book]):
        self._books = books

    def query_by_vector(self, vector, top_k):
        return self._books[:top_k]

    def query_by_metadata(self, field, value, exact_match, top_k):
        matches = []
        for book in self._books:
            actual = getattr(book, field, None)
            if isinstance(actual, str) and value.lower() in actual.lower():
                matches.append(book)
        return matches[:top_k]

    def is_ready(self) -> bool:
        return True


class FakeHistoryStore:

    def __init__(self, fail: bool = False, error: Optional[Exception] = None):
        self.saved: List[SearchHistory] = []
        self._error = error or (ExternalServiceError("Supabase is down") if fail else None)

    def save(self, history: SearchHistory) -> None:
        if self._error is not None:
            raise self._error
        self.saved.append(history)

    def list(self, user_id: str, limit: int = 10) -> List[SearchHistory]:
        return [item for item in self.saved if item.user_id == user_id][:limit]


# =============================================================================
# Fixtures
# =============================================================================


BOOKS = [
    Book(id="b1", title="Mistborn", author="Brandon Sanderson", categories=["Fantasy"], rating=4.5),
    Book(id="b2", title="Dune", author="Frank Herbert", categories=["Science Fiction"], rating=4.3),
    Book(id="b3", title="Elantris", author="Brandon Sanderson", categories=["Fantasy"], rating=4.0),
]


def make_service(embedder: Optional[FakeEmbedder] = None) -> RecommendationService:
    return RecommendationService(embedder or FakeEmbedder(), FakeVectorIndex(BOOKS))


@pytest.fixture
def history_store():
    return FakeHistoryStore()


@pytest.fixture
def client(history_store):
    service = make_service()
    generator = ExplanationGenerator()

    app.dependency_overrides[get_recommendation_service] = lambda: service
    app.dependency_overrides[get_explanation_generator] = lambda: generator
    app.dependency_overrides[get_history_store] = lambda: history_store
    app.dependency_overrides[get_graph_store] = lambda: None
    app.dependency_overrides[get_settings] = lambda: Settings(default_top_k=2)

    yield TestClient(app)

    app.dependency_overrides.clear()


# =============================================================================
# Tests: POST /recommendations
# =============================================================================


class TestRecommendations:

    def test_author_query(self, client):
        response = client.post(
            "/api/v1/recommendations",
            json={"query": "books by Brandon Sanderson", "top_k": 5, "user_id": "u1"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["pattern"] == "author"
        assert data["user_id"] == "u1"
        assert data["degraded"] is False
        assert [book["id"] for book in data["recommendations"]][:2] == ["b1", "b3"]

    def test_default_top_k_comes_from_settings(self, client):
        response = client.post("/api/v1/recommendations", json={"query": "something to read"})

        assert len(response.json()["recommendations"]) == 2

    def test_generated_user_id(self, client):
        response = client.post("/api/v1/recommendations", json={"query": "something to read"})

        assert response.json()["user_id"]

    def test_explanations_are_attached_on_request(self, client):
        response = client.post(
            "/api/v1/recommendations",
            json={"query": "books by Brandon Sanderson", "include_explanations": True},
        )

        books = response.json()["recommendations"]
        assert books[0]["explanation"] == "Written by Brandon Sanderson, the author you asked for."

    def test_explanations_are_omitted_by_default(self, client):
        response = client.post("/api/v1/recommendations", json={"query": "books by Brandon Sanderson"})

        assert all(book["explanation"] is None for book in response.json()["recommendations"])

    def test_search_is_recorded_in_history(self, client, history_store):
        client.post("/api/v1/recommendations", json={"query": " space opera ", "user_id": "u1"})

        assert len(history_store.saved) == 1
        assert history_store.saved[0].query == "space opera"

    def test_history_failure_does_not_fail_request(self, client):
        app.dependency_overrides[get_history_store] = lambda: FakeHistoryStore(fail=True)

        response = client.post("/api/v1/recommendations", json={"query": "space opera"})

        assert response.status_code == 200

    def test_blank_user_id_is_replaced(self, client, history_store):
        response = client.post("/api/v1/recommendations", json={"query": "fantasy books", "user_id": "   "})

        assert response.status_code == 200
        user_id = response.json()["user_id"]
        assert user_id.strip() == user_id != ""
        assert history_store.saved[0].user_id == user_id

    def test_blank_user_id_with_failing_history_store(self, client):
        app.dependency_overrides[get_history_store] = lambda: FakeHistoryStore(fail=True)

        response = client.post("/api/v1/recommendations", json={"query": "fantasy books", "user_id": "   "})

        assert response.status_code == 200

    def test_invalid_history_record_does_not_fail_request(self, client):
        app.dependency_overrides[get_history_store] = lambda: FakeHistoryStore(error=ValueError("bad record"))

        response = client.post("/api/v1/recommendations", json={"query": "fantasy books", "user_id": "u1"})

        assert response.status_code == 200

    @pytest.mark.parametrize("query", ["", "ab", "x" * 201])
    def test_invalid_query_is_400(self, client, query):
        response = client.post("/api/v1/recommendations", json={"query": query})

        assert response.status_code == 400

    @pytest.mark.parametrize("top_k", [0, 101])
    def test_invalid_top_k_is_422(self, client, top_k):
        response = client.post("/api/v1/recommendations", json={"query": "space opera", "top_k": top_k})

        assert response.status_code == 422

    def test_timeout_gives_degraded_response(self, client):
        service = make_service(FakeEmbedder(EmbeddingError("timed out", EmbeddingErrorKind.TIMEOUT)))
        app.dependency_overrides[get_recommendation_service] = lambda: service

        response = client.post("/api/v1/recommendations", json={"query": "dune sequels"})

        assert response.status_code == 200
        assert response.json()["degraded"] is True

    def test_auth_failure_is_401(self, client):
        service = make_service(FakeEmbedder(EmbeddingError("bad token", EmbeddingErrorKind.AUTH)))
        app.dependency_overrides[get_recommendation_service] = lambda: service

        response = client.post("/api/v1/recommendations", json={"query": "dragons and wizards"})

        assert response.status_code == 401

    def test_other_embedding_failure_is_503(self, client):
        service = make_service(FakeEmbedder(EmbeddingError("boom", EmbeddingErrorKind.RATE_LIMITED)))
        app.dependency_overrides[get_recommendation_service] = lambda: service

        response = client.post("/api/v1/recommendations", json={"query": "dragons and wizards"})

        assert response.status_code == 503


# =============================================================================
# Tests: GET /history
# =============================================================================


class TestHistory:

    def test_lists_saved_searches(self, client, history_store):
        history_store.saved.append(
            SearchHistory(
                user_id="u1",
                query="space opera",
                recommendations=[BOOKS[1]],
                id="h1",
                created_at=datetime(2024, 5, 1, tzinfo=UTC),
            )
        )

        response = client.get("/api/v1/history", params={"user_id": "u1"})

        assert response.status_code == 200
        data = response.json()
        assert data["user_id"] == "u1"
        assert data["history"][0]["query"] == "space opera"
        assert data["history"][0]["recommendations"][0]["title"] == "Dune"

    def test_user_id_is_required(self, client):
        assert client.get("/api/v1/history").status_code == 422

    def test_not_configured_is_503(self, client):
        app.dependency_overrides[get_history_store] = lambda: None

        response = client.get("/api/v1/history", params={"user_id": "u1"})

        assert response.status_code == 503


# =============================================================================
# Tests: GET /health and GET /prewarm
# =============================================================================


class TestOperations:

    def test_health(self, client):
        response = client.get("/api/v1/health")

        data = response.json()
        assert data["status"] == "ok"
        assert data["overall"] is True
        assert data["components"] == {
            "embedder": True,
            "vector_index": True,
            "history_store": True,
            "graph_store": False,
        }

    def test_prewarm_twice(self, client):
        assert client.get("/api/v1/prewarm").json() == {"status": "ok"}
        assert client.get("/api/v1/prewarm").json() == {"status": "already_warm"}

    def test_root(self, client):
        assert client.get("/").json()["health"] == "/api/v1/health"
