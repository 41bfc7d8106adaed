"""
Converters between domain entities/value objects and API schemas.

This module centralizes all conversion logic between the domain layer
and the API layer, maintaining clean separation of concerns.
"""

from dataclasses import asdict

from app.domain import entities as domain
from app.domain import value_objects as domain_vo
from app.api.v1 import schemas as api


def domain_book_to_api(book: domain.Book) -> api.Book:
    """
    Convert a domain Book entity to an API Book model.

    Args:
        book: Domain Book entity

    Returns:
        API Book model
    """
    book_dict = asdict(book)
    return api.Book(**book_dict)


def domain_result_to_api(
    result: domain_vo.RecommendationResult,
    user_id: str,
) -> api.RecommendationResponse:
    """
    Convert a domain RecommendationResult to the API response.

    Args:
        result: Output of RecommendationService.get_recommendations
        user_id: Caller identity the search was recorded under

    Returns:
        API RecommendationResponse model
    """
    return api.RecommendationResponse(
        recommendations=[domain_book_to_api(book) for book in result.books],
        user_id=user_id,
        pattern=result.enhanced_query.pattern.value,
        degraded=result.degraded,
    )


def domain_history_to_api(history: domain.SearchHistory) -> api.SearchHistoryItem:
    return api.SearchHistoryItem(
        id=history.id,
        user_id=history.user_id,
        query=history.query,
        recommendations=[domain_book_to_api(book) for book in history.recommendations],
        created_at=history.created_at,
    )


def domain_node_to_api(node: domain.BookNode) -> api.GraphNode:
    return api.GraphNode(**asdict(node))


def domain_graph_to_api(graph: domain.BookGraph) -> api.GraphResponse:
    return api.GraphResponse(
        nodes=[domain_node_to_api(node) for node in graph.nodes],
        relationships=[
            api.GraphRelationship(
                source=rel.source,
                target=rel.target,
                type=rel.type,
                weight=rel.weight,
            )
            for rel in graph.relationships
        ],
    )


def domain_nodes_to_api(nodes: list[domain.BookNode]) -> api.GraphNodeList:
    return api.GraphNodeList(books=[domain_node_to_api(node) for node in nodes], count=len(nodes))
