"""
Domain layer - Core business logic and entities.

This layer contains the business entities, value objects, the static query
templates, and defines the ports (interfaces) that the infrastructure layer
must implement.

It has NO dependencies on external frameworks, databases, or APIs.
"""

from .entities import Book, SearchHistory, BookNode, BookGraph, GraphRelationship, GraphStats
from .value_objects import (
    EnhancedQuery,
    QueryFilters,
    QueryIntent,
    QueryPattern,
    SearchHints,
    SearchStrategy,
    MetadataFilter,
)

__all__ = [
    # Entities
    "Book",
    "SearchHistory",
    "BookNode",
    "BookGraph",
    "GraphRelationship",
    "GraphStats",
    # Value Objects
    "EnhancedQuery",
    "QueryFilters",
    "QueryIntent",
    "QueryPattern",
    "SearchHints",
    "SearchStrategy",
    "MetadataFilter",
]
