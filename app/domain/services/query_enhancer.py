"""
Cached front door to the query intent parser.
"""

import logging
from typing import Optional

from app.domain.services.query_parser import QueryIntentParser
from app.domain.utils.ttl_cache import TTLCache
from app.domain.value_objects import CacheStats, EnhancedQuery, QueryPattern

logger = logging.getLogger(__name__)

DEFAULT_INTENT_CACHE_TTL_SECONDS = 300
INTENT_CACHE_MAX_ENTRIES = 1000


class QueryEnhancer:
    """
    Classifies queries, memoizing the result per trimmed query text.

    The cache is injected so several services (and tests with a fake
    clock) can decide its TTL and lifetime explicitly.
    """

    def __init__(
        self,
        parser: Optional[QueryIntentParser] = None,
        cache: Optional[TTLCache[str, EnhancedQuery]] = None,
    ) -> None:
        self._parser = parser if parser is not None else QueryIntentParser()
        self._cache = cache if cache is not None else TTLCache(
            ttl_seconds=DEFAULT_INTENT_CACHE_TTL_SECONDS,
            max_entries=INTENT_CACHE_MAX_ENTRIES,
            name="intent",
        )

    def enhance(self, query: str) -> EnhancedQuery:
        """
        Classify `query`, reusing a cached result while it is fresh.

        Args:
            query: Raw user text

        Returns:
            The EnhancedQuery for the trimmed text
        """
        key = (query or "").strip()

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"Intent cache hit for '{key}'")
            return cached

        enhanced = self._parser.classify(key)
        logger.info(
            f"Enhanced query '{key}': pattern={enhanced.pattern.value}, "
            f"terms={enhanced.extracted_terms}, expanded={len(enhanced.expanded_terms)}, "
            f"filters={enhanced.filters}"
        )
        self._cache.put(key, enhanced)
        return enhanced

    def detect_pattern(self, query: str) -> QueryPattern:
        return self.enhance(query).pattern

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Cleared query intent cache")
