"""
Degraded, metadata-only search.

Used when the embedding service times out. Best effort: a metadata
sub-query that fails is logged and skipped, the searcher itself never
raises for an unavailable index.
"""

import logging
from typing import Dict, List

from app.domain.entities import Book
from app.domain.errors import ExternalServiceError
from app.domain.ports import VectorIndex
from app.domain.templates import FALLBACK_STOP_WORDS

logger = logging.getLogger(__name__)

MAX_FALLBACK_TERMS = 5
POPULAR_RATING_VALUE = "4.5"
RECENT_YEAR_VALUE = "2020"


class FallbackSearcher:
    """
    Term-based metadata search with an escalation ladder.

    1. Up to five meaningful query words, each looked up in "title" and
       then "description" (partial match). Each lookup is skipped once top_k*2
       books have been collected.
    2. If fewer than top_k books, highly rated books ("rating" = 4.5).
    3. If still fewer than top_k, recent books ("year" = 2020).

    Every returned book is tagged with the fallback- identifier prefix.
    """

    def __init__(self, vector_index: VectorIndex) -> None:
        self._vector_index = vector_index

    def fallback(self, query_text: str, top_k: int) -> List[Book]:
        """
        Args:
            query_text: Raw user query
            top_k: Number of books the caller ultimately wants

        Returns:
            Up to a few multiples of top_k books, tagged as fallback results
        """
        collected: Dict[str, Book] = {}
        target = top_k * 2
        per_query = top_k * 3

        for term in self.extract_terms(query_text):
            for field in ("title", "description"):
                if len(collected) >= target:
                    break
                self._collect(collected, field, term, per_query)

        if len(collected) < top_k:
            self._collect(collected, "rating", POPULAR_RATING_VALUE, per_query)

        if len(collected) < top_k:
            self._collect(collected, "year", RECENT_YEAR_VALUE, per_query)

        logger.warning(
            f"Fallback search for '{query_text}' produced {len(collected)} books"
        )
        return [book.as_fallback() for book in collected.values()]

    @staticmethod
    def extract_terms(query_text: str) -> List[str]:
        """Up to five words longer than three characters, skipping filler words."""
        terms = []
        for word in query_text.split():
            if len(word) > 3 and word.lower() not in FALLBACK_STOP_WORDS:
                terms.append(word)
            if len(terms) == MAX_FALLBACK_TERMS:
                break
        return terms

    def _collect(self, collected: Dict[str, Book], field: str, value: str, top_k: int) -> None:
        try:
            books = self._vector_index.query_by_metadata(field, value, False, top_k)
        except ExternalServiceError as e:
            logger.warning(f"Fallback metadata query {field}='{value}' failed: {e}")
            return

        for book in books:
            key = book.identity_key()
            if key not in collected:
                collected[key] = book
