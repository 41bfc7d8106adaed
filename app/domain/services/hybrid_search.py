"""
Executes a search strategy against the vector index.

Metadata results are always collected before semantic (or fallback)
results, and later results never displace earlier ones with the same
identity, so the exact-match-first accumulation is deterministic.
"""

import logging
from typing import Dict, List, Optional

from app.domain.entities import Book
from app.domain.errors import EmbeddingError
from app.domain.ports import Embedder, VectorIndex
from app.domain.services.fallback_search import FallbackSearcher
from app.domain.value_objects import QueryIntent, SearchStrategy

logger = logging.getLogger(__name__)

OVER_FETCH_FACTOR = 3


class HybridSearchExecutor:
    """
    Metadata lookup plus semantic search, with timeout fallback.

    A timeout from the embedder is the only soft failure: the fallback
    searcher's results are used instead and are never down-weighted. Any
    other embedding error, and any vector index error, propagates.
    """

    def __init__(
        self,
        embedder: Embedder,
        vector_index: VectorIndex,
        fallback_searcher: Optional[FallbackSearcher] = None,
    ) -> None:
        self._embedder = embedder
        self._vector_index = vector_index
        self._fallback = (
            fallback_searcher if fallback_searcher is not None else FallbackSearcher(vector_index)
        )

    def search(self, intent: QueryIntent, strategy: SearchStrategy, top_k: int) -> List[Book]:
        """
        Run the strategy.

        Args:
            intent: The coarse intent; its query text is what gets embedded
            strategy: Output of SearchStrategyPlanner.plan
            top_k: Number of books the caller wants after ranking

        Returns:
            Unranked candidates, possibly more than top_k

        Raises:
            EmbeddingError: For any embedding failure other than a timeout
            ExternalServiceError: If the vector index fails
        """
        collected: Dict[str, Book] = {}

        # -----------------------------------------------------------------------
        # Step 1: Metadata lookups (exact first, then partial to fill up)
        # -----------------------------------------------------------------------
        metadata_filter = strategy.metadata_filter
        fetch_count = top_k * OVER_FETCH_FACTOR
        if metadata_filter is not None:
            if metadata_filter.exact_match:
                self._merge(
                    collected,
                    self._vector_index.query_by_metadata(
                        metadata_filter.field, metadata_filter.value, True, fetch_count
                    ),
                )
            if len(collected) < top_k:
                self._merge(
                    collected,
                    self._vector_index.query_by_metadata(
                        metadata_filter.field, metadata_filter.value, False, fetch_count
                    ),
                )
            logger.info(
                f"Metadata search {metadata_filter.field}='{metadata_filter.value}' "
                f"returned {len(collected)} books"
            )

        # -----------------------------------------------------------------------
        # Step 2: Semantic search, or fallback on embedding timeout
        # -----------------------------------------------------------------------
        if len(collected) < top_k or strategy.hybrid:
            try:
                embedding = self._embedder.encode(intent.query)
            except EmbeddingError as e:
                if not e.is_timeout:
                    logger.error(f"Embedding failed ({e.kind.value}): {e}")
                    raise
                logger.warning(f"Embedding timed out, using fallback search: {e}")
                self._merge(collected, self._fallback.fallback(intent.query, top_k))
            else:
                semantic = self._vector_index.query_by_vector(
                    embedding, fetch_count
                )
                if strategy.hybrid:
                    semantic = [
                        book.with_rating(book.rating * strategy.semantic_weight)
                        for book in semantic
                    ]
                self._merge(collected, semantic)
                logger.info(f"Semantic search returned {len(semantic)} books")

        return list(collected.values())

    @staticmethod
    def _merge(collected: Dict[str, Book], books: List[Book]) -> None:
        for book in books:
            key = book.identity_key()
            if key not in collected:
                collected[key] = book
