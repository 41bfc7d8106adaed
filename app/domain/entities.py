"""
Domain entities for the book recommendation system.

Books arrive from the external vector index already deserialized; the core
never mutates them, it only clones (dataclasses.replace), filters and
reorders them. Search history and graph records are read/write shapes for
the collaborating stores.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, UTC
from typing import Optional, List

FALLBACK_ID_PREFIX = "fallback-"
UNKNOWN_FIELD = "Unknown"


@dataclass(frozen=True)
class Book:
    """
    A book as returned by the vector index.

    Every field except title/author may be missing in the external payload.
    Books without an identifier get a synthetic identity from title+author
    (see identity_key) so they can still be deduplicated.
    """

    title: Optional[str] = None
    """Book title"""

    author: Optional[str] = None
    """Author name(s) as a single display string"""

    description: Optional[str] = None
    """Book description/summary"""

    categories: List[str] = field(default_factory=list)
    """Ordered list of categories/genres"""

    rating: float = 0.0
    """Average rating (0.0 to 5.0); semantic results may carry a down-weighted copy"""

    year: Optional[int] = None
    """Publication year"""

    ratings_count: Optional[int] = None
    """Number of ratings"""

    thumbnail: Optional[str] = None
    """URL to book cover image"""

    page_count: Optional[int] = None
    """Number of pages"""

    id: Optional[str] = None
    """Stable identifier in the vector index"""

    explanation: Optional[str] = None
    """Human-readable justification, filled in by the explanation generator"""

    def __post_init__(self) -> None:
        """Validate book data."""
        if self.rating < 0:
            raise ValueError(f"rating cannot be negative, got {self.rating}")

        if self.page_count is not None and self.page_count < 0:
            raise ValueError(f"page_count cannot be negative, got {self.page_count}")

    def identity_key(self) -> str:
        """Identifier, or a synthetic title:author identity when absent."""
        if self.id:
            return self.id
        return f"{self.title or UNKNOWN_FIELD}:{self.author or UNKNOWN_FIELD}"

    def dedup_key(self) -> str:
        """Key used by the ranker to collapse editions of the same work."""
        return f"{self.title or UNKNOWN_FIELD}-{self.author or UNKNOWN_FIELD}"

    def is_fallback(self) -> bool:
        """Check if this book came from the degraded fallback search."""
        return bool(self.id and self.id.startswith(FALLBACK_ID_PREFIX))

    def as_fallback(self) -> "Book":
        """Copy tagged with the fallback- identifier prefix (idempotent)."""
        if self.is_fallback():
            return self
        return replace(self, id=f"{FALLBACK_ID_PREFIX}{self.identity_key()}")

    def with_rating(self, rating: float) -> "Book":
        return replace(self, rating=rating)

    def with_explanation(self, explanation: str) -> "Book":
        return replace(self, explanation=explanation)

    def get_searchable_text(self) -> str:
        """All free text of the book, lower-cased, for keyword matching."""
        parts = [self.title or "", self.author or "", self.description or ""]
        parts.extend(self.categories)
        return " ".join(parts).lower()


@dataclass
class SearchHistory:
    """A stored recommendation request for a user."""

    user_id: str
    """Identifier of the requesting user (anonymous users get a generated one)"""

    query: str
    """The raw query text"""

    recommendations: List[Book] = field(default_factory=list)
    """Books returned for the query"""

    id: Optional[str] = None
    """Store-assigned identifier"""

    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    """When the request was made"""

    def __post_init__(self) -> None:
        if not self.user_id or not self.user_id.strip():
            raise ValueError("user_id cannot be empty")

        if not self.query or not self.query.strip():
            raise ValueError("query cannot be empty")


@dataclass(frozen=True)
class BookNode:
    """A book vertex in the similarity graph."""

    id: str
    title: str
    author: str
    categories: List[str] = field(default_factory=list)
    rating: Optional[float] = None
    year: Optional[int] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class GraphRelationship:
    """A weighted edge between two book nodes."""

    source: str
    target: str
    type: str
    """Relationship type: SIMILAR_TO, SAME_AUTHOR or SAME_CATEGORY"""

    weight: float = 1.0


@dataclass
class BookGraph:
    """Neighbourhood of a book: the source node first, then related nodes."""

    nodes: List[BookNode] = field(default_factory=list)
    relationships: List[GraphRelationship] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.nodes


@dataclass(frozen=True)
class GraphStats:
    total_books: int
    total_relationships: int
