"""
API endpoints for the book similarity graph.

All routes answer 503 when no graph store is configured.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.domain.errors import NotFoundError
from app.domain.ports import GraphStore
from app.api.v1 import schemas as api
from app.api.v1.converters import domain_graph_to_api, domain_nodes_to_api
from app.api.v1.dependencies import get_graph_store
from app.api.v1.error_mapping import to_http_exception

router = APIRouter(prefix="/graph")


def require_graph_store(
    graph_store: Optional[GraphStore] = Depends(get_graph_store),
) -> GraphStore:
    if graph_store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Graph database is not configured",
        )
    return graph_store


@router.get("/book", response_model=api.GraphResponse)
def get_book_graph(
    book_id: str = Query(min_length=1),
    depth: int = Query(default=2, description="Traversal depth, clamped to 1-5"),
    graph_store: GraphStore = Depends(require_graph_store),
) -> api.GraphResponse:
    """
    Neighbourhood of a book.

    Raises:
        404: Book not found in the graph
    """
    try:
        graph = graph_store.get_book_graph(book_id, depth)
        if graph.is_empty():
            raise NotFoundError(f"Book with id '{book_id}' not found")
    except (ValueError, LookupError, RuntimeError) as e:
        raise to_http_exception(e) from e

    return domain_graph_to_api(graph)


@router.get("/similar", response_model=api.GraphNodeList)
def get_similar_books(
    book_id: str = Query(min_length=1),
    limit: int = Query(default=20, ge=1, le=100),
    graph_store: GraphStore = Depends(require_graph_store),
) -> api.GraphNodeList:
    """Books linked to `book_id` by SIMILAR_TO, strongest first."""
    try:
        if graph_store.get_book_by_id(book_id) is None:
            raise NotFoundError(f"Book with id '{book_id}' not found")
        books = graph_store.get_similar_books(book_id, limit)
    except (ValueError, LookupError, RuntimeError) as e:
        raise to_http_exception(e) from e

    return domain_nodes_to_api(books)


@router.get("/search", response_model=api.GraphNodeList)
def search_graph_books(
    q: str = Query(min_length=1, description="Case-insensitive title fragment"),
    limit: int = Query(default=20, ge=1, le=100),
    graph_store: GraphStore = Depends(require_graph_store),
) -> api.GraphNodeList:
    try:
        books = graph_store.search_books(q, limit)
    except (ValueError, LookupError, RuntimeError) as e:
        raise to_http_exception(e) from e

    return domain_nodes_to_api(books)


@router.get("/stats", response_model=api.GraphStatsResponse)
def get_graph_stats(
    graph_store: GraphStore = Depends(require_graph_store),
) -> api.GraphStatsResponse:
    try:
        stats = graph_store.get_graph_stats()
    except (ValueError, LookupError, RuntimeError) as e:
        raise to_http_exception(e) from e

    return api.GraphStatsResponse(
        total_books=stats.total_books,
        total_relationships=stats.total_relationships,
    )
