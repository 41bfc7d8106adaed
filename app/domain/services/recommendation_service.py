"""
Recommendation use case.

Orchestrates the pipeline for one request:
    query -> QueryEnhancer (intent cache) -> QueryIntent -> SearchStrategyPlanner
          -> HybridSearchExecutor -> ResultRanker -> result cache -> caller

Following Hexagonal Architecture principles, the service depends only on
domain objects and port protocols (never on concrete adapters).
"""

import logging
import threading
import time
from dataclasses import replace
from typing import Dict, Optional

from app.domain.errors import BookRecommenderError, InvalidInputError
from app.domain.ports import Embedder, VectorIndex
from app.domain.services.hybrid_search import HybridSearchExecutor
from app.domain.services.query_enhancer import QueryEnhancer
from app.domain.services.ranking import ResultRanker
from app.domain.services.strategy_planner import SearchStrategyPlanner
from app.domain.utils.ttl_cache import TTLCache
from app.domain.value_objects import CacheStats, QueryIntent, RecommendationResult

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 3
MAX_QUERY_LENGTH = 200
MAX_TOP_K = 100

RESULT_CACHE_TTL_SECONDS = 300
RESULT_CACHE_MAX_ENTRIES = 100

PREWARM_QUERIES = ("fantasy books", "science fiction", "mystery novels")
PREWARM_TOP_K = 5


class RecommendationService:
    """
    Turns a free-text query into a ranked list of books.

    Usage:
        service = RecommendationService(embedder, vector_index)
        result = service.get_recommendations("cozy mystery novels", top_k=10)
        result.books       # ranked, deduplicated books
        result.degraded    # True if the embedder timed out and fallback was used
    """

    def __init__(
        self,
        embedder: Embedder,
        vector_index: VectorIndex,
        query_enhancer: Optional[QueryEnhancer] = None,
        planner: Optional[SearchStrategyPlanner] = None,
        executor: Optional[HybridSearchExecutor] = None,
        ranker: Optional[ResultRanker] = None,
        result_cache: Optional[TTLCache[str, RecommendationResult]] = None,
    ) -> None:
        """
        Initialize the service with its collaborators.

        Args:
            embedder: Port used for query embeddings
            vector_index: Port used for metadata and vector lookups
            query_enhancer: Cached intent parser (default: own instance)
            planner: Strategy planner (default: own instance)
            executor: Search executor (default: built from embedder and vector_index)
            ranker: Result ranker (default: own instance)
            result_cache: Cache of final results keyed by "query:top_k"
        """
        self._embedder = embedder
        self._vector_index = vector_index
        self._enhancer = query_enhancer if query_enhancer is not None else QueryEnhancer()
        self._planner = planner if planner is not None else SearchStrategyPlanner()
        self._executor = (
            executor if executor is not None else HybridSearchExecutor(embedder, vector_index)
        )
        self._ranker = ranker if ranker is not None else ResultRanker()
        self._result_cache = result_cache if result_cache is not None else TTLCache(
            ttl_seconds=RESULT_CACHE_TTL_SECONDS,
            max_entries=RESULT_CACHE_MAX_ENTRIES,
            name="result",
        )
        self._warm = False
        self._prewarm_lock = threading.Lock()

    def get_recommendations(self, query: str, top_k: int = 10) -> RecommendationResult:
        """
        Recommend books for a query.

        Args:
            query: Free-text query; surrounding whitespace is ignored
            top_k: Number of books to return (1-100)

        Returns:
            RecommendationResult with at most top_k books

        Raises:
            InvalidInputError: If the query is empty, too short or too long,
                               or top_k is out of range
            EmbeddingError: If the embedder fails for a reason other than a timeout
            ExternalServiceError: If the vector index fails
        """
        text = self.validate_query(query)
        if not (1 <= top_k <= MAX_TOP_K):
            raise InvalidInputError(f"top_k must be between 1 and {MAX_TOP_K}, got {top_k}")

        cache_key = f"{text}:{top_k}"
        cached = self._result_cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Result cache hit for '{cache_key}'")
            return replace(cached, cached=True)

        start_time = time.time()

        enhanced = self._enhancer.enhance(text)
        intent = QueryIntent.from_enhanced_query(enhanced)
        strategy = self._planner.plan(intent)
        logger.info(
            f"Query '{text}' -> intent={intent.kind.value}, hybrid={strategy.hybrid}, "
            f"semantic_weight={strategy.semantic_weight}, filter={strategy.metadata_filter}"
        )

        candidates = self._executor.search(intent, strategy, top_k)
        books = self._ranker.rank(candidates, intent, top_k)
        degraded = any(book.is_fallback() for book in books)

        latency_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Recommended {len(books)}/{len(candidates)} books for '{text}' "
            f"in {latency_ms:.1f} ms (degraded={degraded})"
        )

        result = RecommendationResult(books=books, enhanced_query=enhanced, degraded=degraded)
        self._result_cache.put(cache_key, result)
        return result

    @staticmethod
    def validate_query(query: Optional[str]) -> str:
        """Trimmed query text, or InvalidInputError if it cannot be searched."""
        text = (query or "").strip()
        if not text:
            raise InvalidInputError("Query cannot be empty")

        if len(text) < MIN_QUERY_LENGTH:
            raise InvalidInputError(
                f"Query is too short (minimum {MIN_QUERY_LENGTH} characters)"
            )

        if len(text) > MAX_QUERY_LENGTH:
            raise InvalidInputError(
                f"Query is too long (maximum {MAX_QUERY_LENGTH} characters)"
            )
        return text

    def prewarm(self) -> str:
        """
        Warm the embedder, the metadata path and the caches once per process.

        Returns:
            "already_warm" if a previous prewarm succeeded, "ok" if every
            step succeeded, "partial" otherwise (a later call retries)
        """
        with self._prewarm_lock:
            if self._warm:
                return "already_warm"

            ok = True
            start_time = time.time()

            try:
                self._embedder.encode(PREWARM_QUERIES[0])
            except BookRecommenderError as e:
                logger.warning(f"Prewarm: embedder not ready: {e}")
                ok = False

            try:
                self._vector_index.query_by_metadata("title", "test", False, 1)
            except BookRecommenderError as e:
                logger.warning(f"Prewarm: metadata lookup failed: {e}")
                ok = False

            for sample in PREWARM_QUERIES:
                try:
                    self.get_recommendations(sample, PREWARM_TOP_K)
                except BookRecommenderError as e:
                    logger.warning(f"Prewarm: sample query '{sample}' failed: {e}")
                    ok = False
                    break

            self._warm = ok
            logger.info(
                f"Prewarm finished in {(time.time() - start_time) * 1000:.0f} ms "
                f"({'ok' if ok else 'partial'})"
            )
            return "ok" if ok else "partial"

    def get_health_status(self) -> Dict[str, bool]:
        """
        Readiness of the collaborators.

        Returns:
            {"embedder": bool, "vector_index": bool, "overall": bool}
        """
        embedder_ready = self._embedder.is_ready()
        index_ready = self._vector_index.is_ready()
        return {
            "embedder": embedder_ready,
            "vector_index": index_ready,
            "overall": embedder_ready and index_ready,
        }

    def cache_stats(self) -> Dict[str, CacheStats]:
        return {
            "intent": self._enhancer.cache_stats(),
            "result": self._result_cache.stats(),
        }

    def clear_caches(self) -> None:
        self._enhancer.clear_cache()
        self._result_cache.clear()
        logger.info("Cleared recommendation caches")
