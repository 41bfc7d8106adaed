"""
Value objects for the domain layer.

Value objects are immutable objects that represent descriptive aspects
of the domain with no conceptual identity: the classified query, its
filters and weighting hints, and the search strategy derived from it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List

from .entities import Book


class QueryPattern(str, Enum):
    """The single pattern assigned to a query by the template engine."""

    AUTHOR = "author"
    GENRE = "genre"
    MOOD = "mood"
    SIMILAR_TO = "similar_to"
    TIME_BASED = "time_based"
    AUDIENCE = "audience"
    LENGTH = "length"
    COMPLEXITY = "complexity"
    THEME = "theme"
    AWARD = "award"
    SETTING = "setting"
    PACE = "pace"
    PERSPECTIVE = "perspective"
    GENERAL = "general"


@dataclass(frozen=True)
class QueryFilters:
    """
    Constraints extracted from a query.

    All filters are optional and additive. When a filter is None or empty,
    it means "no constraint", never "exclude".
    """

    author: Optional[str] = None
    """Author name captured from the query"""

    genres: List[str] = field(default_factory=list)
    """Full synonym list of the matched genre"""

    themes: List[str] = field(default_factory=list)
    """Theme tags whose keywords appear in the query"""

    min_rating: Optional[float] = None
    """Minimum average rating"""

    max_pages: Optional[int] = None
    """Maximum page count"""

    min_year: Optional[int] = None
    """Minimum publication year (inclusive)"""

    max_year: Optional[int] = None
    """Maximum publication year (inclusive)"""

    audience: Optional[str] = None
    """Target audience: 'children', 'young adult' or 'adult'"""

    settings: List[str] = field(default_factory=list)
    """Places or historical periods the book should be set in"""

    def is_empty(self) -> bool:
        """Check if no filters are set."""
        scalars = [
            self.author,
            self.min_rating,
            self.max_pages,
            self.min_year,
            self.max_year,
            self.audience,
        ]
        return (
            all(value is None for value in scalars)
            and not self.genres
            and not self.themes
            and not self.settings
        )


@dataclass(frozen=True)
class SearchHints:
    """Relative weights that tell the search how to treat a query."""

    semantic_weight: float = 0.6
    metadata_weight: float = 0.4
    rating_boost: float = 1.0
    recency_boost: float = 1.0

    def __post_init__(self) -> None:
        """Validate weight constraints."""
        for name in ("semantic_weight", "metadata_weight", "rating_boost", "recency_boost"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} cannot be negative, got {value}")


@dataclass(frozen=True)
class EnhancedQuery:
    """
    A raw query rewritten into a structured intent.

    Created once per distinct query text by the intent parser and shared
    read-only through the intent cache.
    """

    original_query: str
    """The query text as received (trimmed)"""

    pattern: QueryPattern = QueryPattern.GENERAL
    """The one pattern assigned to the query"""

    extracted_terms: List[str] = field(default_factory=list)
    """Salient terms pulled out of the query, in discovery order"""

    expanded_terms: List[str] = field(default_factory=list)
    """Synonyms and theme keywords added for recall"""

    filters: QueryFilters = field(default_factory=QueryFilters)
    search_hints: SearchHints = field(default_factory=SearchHints)


class IntentKind(str, Enum):
    AUTHOR = "author"
    GENRE = "genre"
    SIMILAR_TO = "similar_to"
    GENERAL = "general"


@dataclass(frozen=True)
class QueryIntent:
    """
    Coarse intent used by the strategy planner and the ranker.

    Derived from an EnhancedQuery; only Author and Genre carry a target
    that metadata filtering and ranking can act on.
    """

    kind: IntentKind
    query: str = ""
    name: Optional[str] = None
    genre: Optional[str] = None

    def __post_init__(self) -> None:
        if self.kind == IntentKind.AUTHOR and not self.name:
            raise ValueError("Author intent requires a name")

        if self.kind == IntentKind.GENRE and not self.genre:
            raise ValueError("Genre intent requires a genre")

    @staticmethod
    def author(name: str, query: str = "") -> "QueryIntent":
        return QueryIntent(kind=IntentKind.AUTHOR, query=query, name=name)

    @staticmethod
    def for_genre(genre: str, query: str = "") -> "QueryIntent":
        return QueryIntent(kind=IntentKind.GENRE, query=query, genre=genre)

    @staticmethod
    def similar_to(query: str) -> "QueryIntent":
        return QueryIntent(kind=IntentKind.SIMILAR_TO, query=query)

    @staticmethod
    def general(query: str) -> "QueryIntent":
        return QueryIntent(kind=IntentKind.GENERAL, query=query)

    @staticmethod
    def from_enhanced_query(enhanced: EnhancedQuery) -> "QueryIntent":
        """
        Project the rich template result onto the four coarse intents.

        Args:
            enhanced: Output of the intent parser

        Returns:
            Author{name} for Author queries with a captured name,
            Genre{first synonym} for Genre queries, SimilarTo for
            similar-to queries and General{query} for everything else.
        """
        query = enhanced.original_query
        filters = enhanced.filters

        if enhanced.pattern == QueryPattern.AUTHOR and filters.author:
            return QueryIntent.author(filters.author, query=query)

        if enhanced.pattern == QueryPattern.GENRE and filters.genres:
            return QueryIntent.for_genre(filters.genres[0], query=query)

        if enhanced.pattern == QueryPattern.SIMILAR_TO:
            return QueryIntent.similar_to(query)

        return QueryIntent.general(query)


@dataclass(frozen=True)
class MetadataFilter:
    """A single-field metadata lookup against the vector index."""

    field: str
    value: str
    exact_match: bool = False

    def __post_init__(self) -> None:
        if not self.field:
            raise ValueError("Metadata filter field cannot be empty")


@dataclass(frozen=True)
class SearchStrategy:
    """How to execute a search for one intent. Recomputed per request."""

    metadata_filter: Optional[MetadataFilter] = None
    semantic_weight: float = 1.0
    hybrid: bool = False

    def __post_init__(self) -> None:
        if not (0.0 <= self.semantic_weight <= 1.0):
            raise ValueError(
                f"semantic_weight must be between 0.0 and 1.0, got {self.semantic_weight}"
            )


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of a TTL cache: entries held, still valid, already expired."""

    total: int = 0
    valid: int = 0
    expired: int = 0


@dataclass(frozen=True)
class RecommendationResult:
    """
    Output of the recommendation use case.

    `degraded` is True when at least one book came from the fallback
    searcher; `cached` is True when the whole result came from the
    result cache.
    """

    books: List[Book]
    enhanced_query: EnhancedQuery
    degraded: bool = False
    cached: bool = False
