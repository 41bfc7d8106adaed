"""
API endpoints for book recommendations.

This module defines the FastAPI routes for recommendations, search history,
health and prewarm. It handles HTTP concerns and delegates to domain services.
"""

import logging
import uuid
from dataclasses import replace
from datetime import datetime, UTC
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.config import Settings
from app.domain.entities import SearchHistory
from app.domain.ports import GraphStore, HistoryStore
from app.domain.services import ExplanationGenerator, RecommendationService
from app.api.v1 import schemas as api
from app.api.v1.converters import domain_history_to_api, domain_result_to_api
from app.api.v1.dependencies import (
    get_explanation_generator,
    get_graph_store,
    get_history_store,
    get_recommendation_service,
    get_settings,
)
from app.api.v1.error_mapping import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/recommendations", response_model=api.RecommendationResponse)
def get_recommendations(
    request: api.RecommendationRequest,
    service: RecommendationService = Depends(get_recommendation_service),
    explanations: ExplanationGenerator = Depends(get_explanation_generator),
    history_store: Optional[HistoryStore] = Depends(get_history_store),
    settings: Settings = Depends(get_settings),
) -> api.RecommendationResponse:
    """
    Recommend books for a free-text query.

    The query is classified (author, genre, similar-to, ...), a search
    strategy is chosen, and metadata plus semantic results are merged and
    ranked. If the embedding service times out, keyword fallback results
    are returned and `degraded` is true.

    Args:
        request: Query text, result count and options

    Returns:
        RecommendationResponse with ranked books and the detected pattern
    """
    user_id = (request.user_id or "").strip() or str(uuid.uuid4())
    top_k = request.top_k if request.top_k is not None else settings.default_top_k

    try:
        result = service.get_recommendations(request.query, top_k)
    except (ValueError, LookupError, RuntimeError) as e:
        raise to_http_exception(e) from e

    if request.include_explanations and result.books:
        books = explanations.generate_batch_explanations(
            request.query, result.books, result.enhanced_query
        )
        result = replace(result, books=books)

    if history_store is not None:
        try:
            history_store.save(
                SearchHistory(user_id=user_id, query=request.query.strip(), recommendations=result.books)
            )
        except (ValueError, RuntimeError) as e:
            logger.warning(f"Could not save search history for '{user_id}': {e}")

    return domain_result_to_api(result, user_id)


@router.get("/history", response_model=api.HistoryResponse)
def get_search_history(
    user_id: str = Query(min_length=1, description="User whose history to read"),
    limit: int = Query(default=10, ge=1, le=100, description="Max entries (1-100)"),
    history_store: Optional[HistoryStore] = Depends(get_history_store),
) -> api.HistoryResponse:
    """
    Most recent searches of a user, newest first.

    Raises:
        503: History store not configured or unavailable
    """
    if history_store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Search history is not configured",
        )

    try:
        history = history_store.list(user_id, limit)
    except (ValueError, LookupError, RuntimeError) as e:
        raise to_http_exception(e) from e

    return api.HistoryResponse(
        user_id=user_id,
        history=[domain_history_to_api(item) for item in history],
    )


@router.get("/health")
def health_check(
    service: RecommendationService = Depends(get_recommendation_service),
    history_store: Optional[HistoryStore] = Depends(get_history_store),
    graph_store: Optional[GraphStore] = Depends(get_graph_store),
) -> dict:
    """
    Check system health and component readiness.

    Returns the status of all components:
    - embedder: Embedding service configured
    - vector_index: Vector index available
    - history_store / graph_store: Optional stores configured
    - overall: True only if the recommendation path is ready
    """
    health_status = service.get_health_status()

    return {
        "status": "ok" if health_status["overall"] else "degraded",
        "timestamp": datetime.now(UTC).isoformat(),
        "components": {
            "embedder": health_status["embedder"],
            "vector_index": health_status["vector_index"],
            "history_store": history_store is not None,
            "graph_store": graph_store is not None,
        },
        "overall": health_status["overall"],
    }


@router.get("/prewarm", response_model=api.PrewarmResponse)
def prewarm(
    service: RecommendationService = Depends(get_recommendation_service),
) -> api.PrewarmResponse:
    """
    Warm the embedding model, the metadata path and the caches.

    Meant to be called by a keep-warm job right after deployment. Only the
    first successful call does work; later calls report "already_warm".
    """
    return api.PrewarmResponse(status=service.prewarm())
