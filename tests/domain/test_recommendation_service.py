"""
Tests for RecommendationService and QueryEnhancer.

These tests verify:
1. Input validation at the entry point
2. Result and intent caching (observable via call counters on the fakes)
3. Degraded results when the embedder times out
4. Prewarm runs once and reports partial failures
5. Health status reflects component readiness
"""

import pytest
from typing import List, Optional

from app.domain.entities import Book
from app.domain.errors import EmbeddingError, EmbeddingErrorKind, InvalidInputError
from app.domain.services import QueryEnhancer, QueryIntentParser, RecommendationService
from app.domain.services.recommendation_service import PREWARM_QUERIES
from app.domain.utils import TTLCache
from app.domain.value_objects import QueryPattern


# =============================================================================
# Fake implementations for testing
# =============================================================================


class FakeEmbedder:
    """Fake embedder counting calls, optionally failing."""

    def __init__(self, error: Optional[EmbeddingError] = None, ready: bool = True):
        self._error = error
        self._ready = ready
        self.calls = 0

    def encode(self, text: str) -> List[float]:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return [0.1, 0.2, 0.3]

    def get_dimension(self) -> int:
        return 3

    def is_ready(self) -> bool:
        return self._ready


class FakeVectorIndex:
    """Fake index returning the same books for every query."""

    def __init__(self, books: List[Book] = None, ready: bool = True):
        self._books = books or []
        self._ready = ready
        self.vector_calls = 0
        self.metadata_calls = 0

    def query_by_vector(self, vector, top_k):
        self.vector_calls += 1
        return self._books[:top_k]

    def query_by_metadata(self, field, value, exact_match, top_k):
        self.metadata_calls += 1
        return self._books[:top_k]

    def is_ready(self) -> bool:
        return self._ready


class CountingParser(QueryIntentParser):
    """Real parser that counts classifications."""

    def __init__(self):
        self.calls = 0

    def classify(self, query):
        self.calls += 1
        return super().classify(query)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


# =============================================================================
# Helper functions
# =============================================================================


def create_books(count: int) -> List[Book]:
    return [
        Book(id=f"book-{i}", title=f"Book {i}", author="Test Author", rating=4.0 - i * 0.1)
        for i in range(count)
    ]


@pytest.fixture
def index():
    return FakeVectorIndex(create_books(5))


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def service(embedder, index):
    return RecommendationService(embedder, index)


# =============================================================================
# Tests: Validation
# =============================================================================


class TestValidation:

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_empty_query_is_invalid(self, service, query):
        with pytest.raises(InvalidInputError, match="Query cannot be empty"):
            service.get_recommendations(query)

    def test_too_short_query(self, service):
        with pytest.raises(InvalidInputError, match="too short"):
            service.get_recommendations("ab")

    def test_too_long_query(self, service):
        with pytest.raises(InvalidInputError, match="too long"):
            service.get_recommendations("x" * 201)

    @pytest.mark.parametrize("top_k", [0, 101])
    def test_top_k_out_of_range(self, service, top_k):
        with pytest.raises(InvalidInputError, match="top_k"):
            service.get_recommendations("space opera", top_k=top_k)

    def test_invalid_input_is_a_value_error(self, service):
        """The API layer maps ValueError to 400."""
        with pytest.raises(ValueError):
            service.get_recommendations("")

    def test_query_is_trimmed(self):
        assert RecommendationService.validate_query("  dune  ") == "dune"


# =============================================================================
# Tests: Recommendations and caching
# =============================================================================


class TestGetRecommendations:

    def test_returns_ranked_books(self, service):
        result = service.get_recommendations("space opera adventures", top_k=3)

        assert [book.id for book in result.books] == ["book-0", "book-1", "book-2"]
        assert result.degraded is False
        assert result.cached is False
        assert result.enhanced_query.original_query == "space opera adventures"

    def test_second_call_is_served_from_cache(self, service, embedder, index):
        first = service.get_recommendations("space opera adventures", top_k=3)
        second = service.get_recommendations("space opera adventures", top_k=3)

        assert second.cached is True
        assert second.books == first.books
        assert embedder.calls == 1
        assert index.vector_calls == 1

    def test_cache_key_includes_top_k(self, service, embedder):
        service.get_recommendations("space opera adventures", top_k=3)
        service.get_recommendations("space opera adventures", top_k=4)

        assert embedder.calls == 2

    def test_expired_result_is_recomputed(self, embedder, index):
        clock = FakeClock()
        service = RecommendationService(
            embedder,
            index,
            result_cache=TTLCache(ttl_seconds=300, max_entries=100, clock=clock),
        )

        service.get_recommendations("space opera adventures")
        clock.now = 301
        result = service.get_recommendations("space opera adventures")

        assert result.cached is False
        assert embedder.calls == 2

    def test_timeout_marks_result_degraded(self, index):
        embedder = FakeEmbedder(error=EmbeddingError("timed out", EmbeddingErrorKind.TIMEOUT))
        service = RecommendationService(embedder, index)

        result = service.get_recommendations("dragons and wizards", top_k=3)

        assert result.degraded is True
        assert all(book.is_fallback() for book in result.books)

    def test_auth_failure_propagates(self, index):
        embedder = FakeEmbedder(error=EmbeddingError("bad token", EmbeddingErrorKind.AUTH))
        service = RecommendationService(embedder, index)

        with pytest.raises(EmbeddingError):
            service.get_recommendations("dragons and wizards")

    def test_author_query_uses_metadata(self, service, index):
        service.get_recommendations("books by Test Author", top_k=3)

        assert index.metadata_calls >= 1

    def test_clear_caches(self, service, embedder):
        service.get_recommendations("space opera adventures")
        service.clear_caches()
        service.get_recommendations("space opera adventures")

        assert embedder.calls == 2
        assert service.cache_stats()["result"].total == 1


# =============================================================================
# Tests: Prewarm and health
# =============================================================================


class TestPrewarm:

    def test_prewarm_runs_once(self, service):
        assert service.prewarm() == "ok"
        assert service.prewarm() == "already_warm"

    def test_prewarm_runs_every_sample_query(self, service, embedder):
        service.prewarm()

        # one warm-up encode plus one per sample query
        assert embedder.calls == 1 + len(PREWARM_QUERIES)
        assert service.cache_stats()["result"].total == len(PREWARM_QUERIES)

    def test_failed_prewarm_is_partial_and_retried(self, index):
        embedder = FakeEmbedder(error=EmbeddingError("boom", EmbeddingErrorKind.OTHER))
        service = RecommendationService(embedder, index)

        assert service.prewarm() == "partial"
        assert service.prewarm() == "partial"


class TestHealthStatus:

    def test_all_ready(self, service):
        assert service.get_health_status() == {"embedder": True, "vector_index": True, "overall": True}

    def test_index_not_ready(self, embedder):
        service = RecommendationService(embedder, FakeVectorIndex(ready=False))

        status = service.get_health_status()

        assert status["vector_index"] is False
        assert status["overall"] is False


# =============================================================================
# Tests: Query enhancer
# =============================================================================


class TestQueryEnhancer:

    def test_second_enhance_is_cached(self):
        parser = CountingParser()
        enhancer = QueryEnhancer(parser=parser)

        first = enhancer.enhance("fantasy books by Brandon Sanderson")
        second = enhancer.enhance("  fantasy books by Brandon Sanderson ")

        assert parser.calls == 1
        assert second is first

    def test_expired_entry_is_recomputed(self):
        clock = FakeClock()
        parser = CountingParser()
        enhancer = QueryEnhancer(parser=parser, cache=TTLCache(ttl_seconds=10, max_entries=10, clock=clock))

        enhancer.enhance("cozy mysteries")
        clock.now = 10
        enhancer.enhance("cozy mysteries")

        assert parser.calls == 2

    def test_detect_pattern(self):
        assert QueryEnhancer().detect_pattern("books similar to Dune") == QueryPattern.SIMILAR_TO

    def test_cache_stats_and_clear(self):
        enhancer = QueryEnhancer()
        enhancer.enhance("cozy mysteries")

        assert enhancer.cache_stats().valid == 1

        enhancer.clear_cache()
        assert enhancer.cache_stats().total == 0
