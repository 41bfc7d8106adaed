"""
Intent-aware ordering, deduplication and truncation of search candidates.
"""

import logging
from typing import List

from app.domain.entities import Book
from app.domain.value_objects import IntentKind, QueryIntent

logger = logging.getLogger(__name__)

DEDUP_CAPACITY_FACTOR = 3


class ResultRanker:
    """
    Orders candidates for one intent.

    - Author intent: books whose author contains the target name
      (case-insensitive) first, then by rating.
    - Genre intent: books whose categories mention the genre first, then by rating.
    - Other intents: by rating.

    Python's sort is stable, so ties keep their input order in every case.
    """

    def rank(self, results: List[Book], intent: QueryIntent, top_k: int) -> List[Book]:
        """
        Sort, deduplicate by title+author and keep the first top_k.

        Args:
            results: Candidates from the search executor
            intent: Intent the candidates were searched for
            top_k: Number of books to return

        Returns:
            min(top_k, number of distinct title+author pairs) books
        """
        if len(results) <= 1:
            return list(results)

        if intent.kind == IntentKind.AUTHOR:
            target = intent.name.lower()
            ordered = sorted(
                results,
                key=lambda book: (int(target in (book.author or "").lower()), book.rating),
                reverse=True,
            )
        elif intent.kind == IntentKind.GENRE:
            target = intent.genre.lower()
            ordered = sorted(
                results,
                key=lambda book: (
                    int(target in " ".join(book.categories).lower()),
                    book.rating,
                ),
                reverse=True,
            )
        else:
            ordered = sorted(results, key=lambda book: book.rating, reverse=True)

        unique = self.deduplicate(ordered, top_k * DEDUP_CAPACITY_FACTOR)
        return unique[:top_k]

    @staticmethod
    def deduplicate(books: List[Book], capacity: int) -> List[Book]:
        """First occurrence of every title+author, stopping after `capacity` books."""
        seen = set()
        unique: List[Book] = []
        for book in books:
            if len(unique) >= capacity:
                break
            key = book.dedup_key()
            if key in seen:
                continue
            seen.add(key)
            unique.append(book)
        return unique
