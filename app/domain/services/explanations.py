"""
Template-based explanations for recommended books.

Explanations reuse the genre and theme tables the query parser uses, so a
book is justified in the same vocabulary the query was understood in.
Results are cached per query and book for a day.
"""

import logging
from typing import List, Optional

from app.domain.entities import Book
from app.domain.templates import THEME_KEYWORDS, contains_phrase
from app.domain.utils.ttl_cache import TTLCache
from app.domain.value_objects import CacheStats, EnhancedQuery, QueryPattern

logger = logging.getLogger(__name__)

EXPLANATION_CACHE_TTL_SECONDS = 86400
EXPLANATION_CACHE_MAX_ENTRIES = 5000
MAX_REASONS = 3
HIGH_RATING = 4.0

GENERIC_MARKERS = ("Matches your search", "Highly rated recommendation")
MIN_SPECIFIC_LENGTH = 20


class ExplanationGenerator:
    """
    Produces one short human-readable justification per book.

    Usage:
        generator = ExplanationGenerator()
        books = generator.generate_batch_explanations(query, books, enhanced)
    """

    def __init__(self, cache: Optional[TTLCache[str, str]] = None) -> None:
        self._cache = cache if cache is not None else TTLCache(
            ttl_seconds=EXPLANATION_CACHE_TTL_SECONDS,
            max_entries=EXPLANATION_CACHE_MAX_ENTRIES,
            name="explanation",
        )

    def generate_explanation(self, query: str, book: Book, enhanced: EnhancedQuery) -> str:
        """
        Explain why `book` fits `query`.

        Args:
            query: The user's query
            book: A recommended book
            enhanced: The classified query

        Returns:
            A context-specific sentence or two when the book matches the
            query's author, genre, themes, setting or time range; a generic
            sentence otherwise.
        """
        key = f"{query.strip().lower()}:{book.identity_key()}"
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        explanation = self._compose(query.strip(), book, enhanced)
        self._cache.put(key, explanation)
        return explanation

    def generate_batch_explanations(
        self,
        query: str,
        books: List[Book],
        enhanced: EnhancedQuery,
    ) -> List[Book]:
        """Copies of `books` with an explanation attached to each."""
        explained = [
            book.with_explanation(self.generate_explanation(query, book, enhanced))
            for book in books
        ]
        self.log_explanation_quality(explained)
        return explained

    def generate_top_explanations(
        self,
        query: str,
        books: List[Book],
        enhanced: EnhancedQuery,
        top_n: int,
    ) -> List[Book]:
        """Explain only the first `top_n` books; the rest are returned as-is."""
        if top_n <= 0:
            return list(books)
        head = self.generate_batch_explanations(query, books[:top_n], enhanced)
        return head + list(books[top_n:])

    def log_explanation_quality(self, books: List[Book]) -> None:
        explanations = [book.explanation for book in books if book.explanation]
        if not explanations:
            return
        specific = sum(1 for text in explanations if not self.is_generic(text))
        share = specific / len(explanations) * 100
        logger.info(
            f"Explanations: {specific}/{len(explanations)} context-specific ({share:.0f}%)"
        )

    @staticmethod
    def is_generic(explanation: str) -> bool:
        return (
            any(marker in explanation for marker in GENERIC_MARKERS)
            or len(explanation) < MIN_SPECIFIC_LENGTH
        )

    def cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Cleared explanation cache")

    # =========================================================================
    # Private helper methods
    # =========================================================================

    def _compose(self, query: str, book: Book, enhanced: EnhancedQuery) -> str:
        filters = enhanced.filters
        text = book.get_searchable_text()
        reasons: List[str] = []

        if filters.author and book.author and filters.author.lower() in book.author.lower():
            reasons.append(f"Written by {book.author}, the author you asked for")

        if enhanced.pattern == QueryPattern.SIMILAR_TO and enhanced.extracted_terms:
            reasons.append(f"Picked for readers who enjoyed {enhanced.extracted_terms[0]}")

        category = self._matching_category(book, filters.genres)
        if category:
            reasons.append(f"A {category} title in the {filters.genres[0]} genre you asked for")

        themes = [theme for theme in filters.themes if self._mentions_theme(text, theme)]
        if themes:
            names = [theme.replace("-", " ") for theme in themes[:MAX_REASONS]]
            reasons.append(f"Explores {self._join(names)}")

        settings = [setting for setting in filters.settings if setting in text]
        if settings:
            reasons.append(f"Set in {settings[0]}")

        if book.year is not None and self._in_year_range(book.year, filters.min_year, filters.max_year):
            if filters.min_year is not None or filters.max_year is not None:
                reasons.append(f"Published in {book.year}")

        if not reasons:
            if book.rating >= HIGH_RATING:
                return f"Highly rated recommendation ({book.rating:.1f}/5)"
            return f"Matches your search for '{query}'"

        return ". ".join(reasons[:MAX_REASONS]) + "."

    @staticmethod
    def _matching_category(book: Book, genres: List[str]) -> Optional[str]:
        for category in book.categories:
            lowered = category.lower()
            if any(contains_phrase(lowered, genre) for genre in genres):
                return category
        return None

    @staticmethod
    def _mentions_theme(text: str, theme: str) -> bool:
        return any(contains_phrase(text, keyword) for keyword in THEME_KEYWORDS.get(theme, []))

    @staticmethod
    def _in_year_range(year: int, min_year: Optional[int], max_year: Optional[int]) -> bool:
        if min_year is not None and year < min_year:
            return False
        if max_year is not None and year > max_year:
            return False
        return True

    @staticmethod
    def _join(words: List[str]) -> str:
        if len(words) == 1:
            return words[0]
        return ", ".join(words[:-1]) + " and " + words[-1]
