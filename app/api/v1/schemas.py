"""
Request and response models of the HTTP API (pydantic v2).
"""

from datetime import datetime

from pydantic import BaseModel, Field


# request body of POST /recommendations
class RecommendationRequest(BaseModel):
    """
    Request body for POST /recommendations endpoint.
    """
    query: str = Field(description="Free-text description of the books wanted")
    top_k: int | None = Field(default=None, ge=1, le=100, description="Max results (1-100)")
    user_id: str | None = Field(
        default=None,
        description="Caller identity for search history; generated when absent",
    )
    include_explanations: bool | None = Field(
        default=None,
        description="Attach a short explanation to each recommendation",
    )


# response body of POST /recommendations

class Book(BaseModel):
    """
    API representation of a Book entity.

    Maps from the domain Book entity for API responses.
    """

    id: str | None = Field(default=None, description="Identifier in the vector index")
    title: str | None = Field(default=None, description="Book title")
    author: str | None = Field(default=None, description="Author name(s)")
    description: str | None = Field(default=None, description="Book description/summary")
    categories: list[str] = Field(default_factory=list, description="List of categories/genres")
    rating: float = Field(default=0.0, ge=0.0, description="Average rating")
    year: int | None = Field(default=None, description="Publication year")
    ratings_count: int | None = Field(default=None, description="Number of ratings")
    thumbnail: str | None = Field(default=None, description="Cover image URL")
    page_count: int | None = Field(default=None, description="Number of pages")
    explanation: str | None = Field(
        default=None,
        description="Why this book matches the query (include_explanations=true)",
    )


class RecommendationResponse(BaseModel):
    """
    Response wrapper for recommendations with degradation metadata.
    """
    recommendations: list[Book] = Field(description="Ranked, deduplicated books")
    user_id: str = Field(description="Caller identity the search was recorded under")
    pattern: str = Field(description="Detected query pattern (e.g. 'author', 'genre')")
    degraded: bool = Field(
        default=False,
        description="True if the embedding service timed out and keyword fallback was used",
    )


class SearchHistoryItem(BaseModel):
    id: str | None = None
    user_id: str
    query: str
    recommendations: list[Book] = Field(default_factory=list)
    created_at: datetime


class HistoryResponse(BaseModel):
    user_id: str
    history: list[SearchHistoryItem] = Field(description="Most recent searches first")


class PrewarmResponse(BaseModel):
    status: str = Field(description="'ok', 'partial' or 'already_warm'")


# graph endpoints

class GraphNode(BaseModel):
    id: str
    title: str
    author: str
    categories: list[str] = Field(default_factory=list)
    rating: float | None = None
    year: int | None = None
    description: str | None = None


class GraphRelationship(BaseModel):
    source: str = Field(description="Id of the start node")
    target: str = Field(description="Id of the end node")
    type: str = Field(description="SIMILAR_TO, SAME_AUTHOR or SAME_CATEGORY")
    weight: float = 1.0


class GraphResponse(BaseModel):
    """
    Neighbourhood of a book; the requested book is the first node.
    """
    nodes: list[GraphNode]
    relationships: list[GraphRelationship]


class GraphNodeList(BaseModel):
    books: list[GraphNode]
    count: int


class GraphStatsResponse(BaseModel):
    total_books: int = Field(ge=0)
    total_relationships: int = Field(ge=0)
