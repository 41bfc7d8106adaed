"""
FastAPI dependencies for dependency injection.

This module provides singleton instances of adapters and services
for use with FastAPI's Depends() system. Which adapters are built is
decided by the environment settings (see app.config).

Note: We use module-level singletons instead of @lru_cache with Depends()
parameters, which is an antipattern that can cause unexpected behavior.
"""

import logging
from pathlib import Path
from typing import Optional

from app.config import Settings, load_settings
from app.domain.ports import Embedder, GraphStore, HistoryStore, VectorIndex
from app.domain.services import ExplanationGenerator, QueryEnhancer, RecommendationService
from app.domain.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

INTENT_CACHE_MAX_ENTRIES = 1000
RESULT_CACHE_MAX_ENTRIES = 100
EXPLANATION_CACHE_MAX_ENTRIES = 5000

# Module-level singletons (initialized lazily)
_settings: Optional[Settings] = None
_embedder: Optional[Embedder] = None
_vector_index: Optional[VectorIndex] = None
_recommendation_service: Optional[RecommendationService] = None
_explanation_generator: Optional[ExplanationGenerator] = None
_history_store: Optional[HistoryStore] = None
_graph_store: Optional[GraphStore] = None


def get_settings() -> Settings:
    """Provide the settings read from the environment."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def get_embedder() -> Embedder:
    """Provide a singleton instance of the configured embedder."""
    global _embedder
    if _embedder is None:
        settings = get_settings()
        if settings.embedder_backend == "sentence_transformers":
            from app.infrastructure.embeddings.sentence_transformer_embedder import (
                SentenceTransformerEmbedder,
            )

            _embedder = SentenceTransformerEmbedder(
                model_name=settings.sentence_transformer_model,
                dimension=settings.embedding_dimension,
            )
        else:
            from app.infrastructure.embeddings.huggingface_embedder import HuggingFaceEmbedder

            _embedder = HuggingFaceEmbedder(
                api_key=settings.huggingface_api_key,
                model_name=settings.huggingface_model_name,
                base_url=settings.huggingface_base_url,
                dimension=settings.embedding_dimension,
                timeout_seconds=settings.huggingface_timeout_seconds,
                connect_timeout_seconds=settings.huggingface_connect_timeout_seconds,
                retry_attempts=settings.huggingface_retry_attempts,
                retry_delay_ms=settings.huggingface_retry_delay_ms,
            )
    return _embedder


def get_vector_index() -> VectorIndex:
    """Provide a singleton instance of the configured vector index."""
    global _vector_index
    if _vector_index is None:
        settings = get_settings()
        if settings.vector_backend == "faiss":
            _vector_index = _build_faiss_index(settings)
        else:
            from app.infrastructure.search.pinecone_vector_index import PineconeVectorIndex

            _vector_index = PineconeVectorIndex(
                api_key=settings.pinecone_api_key,
                host=settings.pinecone_host(),
                dimension=settings.embedding_dimension,
            )
    return _vector_index


def get_recommendation_service() -> RecommendationService:
    """Provide the Recommendation Service with all dependencies wired."""
    global _recommendation_service
    if _recommendation_service is None:
        settings = get_settings()
        _recommendation_service = RecommendationService(
            embedder=get_embedder(),
            vector_index=get_vector_index(),
            query_enhancer=QueryEnhancer(
                cache=TTLCache(
                    ttl_seconds=settings.intent_cache_ttl_seconds,
                    max_entries=INTENT_CACHE_MAX_ENTRIES,
                    name="intent",
                )
            ),
            result_cache=TTLCache(
                ttl_seconds=settings.result_cache_ttl_seconds,
                max_entries=RESULT_CACHE_MAX_ENTRIES,
                name="result",
            ),
        )
    return _recommendation_service


def get_explanation_generator() -> ExplanationGenerator:
    """Provide a singleton instance of the explanation generator."""
    global _explanation_generator
    if _explanation_generator is None:
        settings = get_settings()
        _explanation_generator = ExplanationGenerator(
            cache=TTLCache(
                ttl_seconds=settings.explanation_cache_ttl_seconds,
                max_entries=EXPLANATION_CACHE_MAX_ENTRIES,
                name="explanation",
            )
        )
    return _explanation_generator


def get_history_store() -> Optional[HistoryStore]:
    """Provide the search history store, or None when Supabase is not configured."""
    global _history_store
    settings = get_settings()
    if _history_store is None and settings.history_enabled:
        from app.infrastructure.db.supabase_history_store import SupabaseHistoryStore

        _history_store = SupabaseHistoryStore(url=settings.supabase_url, api_key=settings.supabase_key)
    return _history_store


def get_graph_store() -> Optional[GraphStore]:
    """Provide the graph store, or None when Neo4j is not configured."""
    global _graph_store
    settings = get_settings()
    if _graph_store is None and settings.graph_enabled:
        from app.infrastructure.graph.neo4j_graph_store import Neo4jGraphStore

        _graph_store = Neo4jGraphStore(
            url=settings.neo4j_http_url,
            user=settings.neo4j_user,
            password=settings.neo4j_password,
            database=settings.neo4j_database,
        )
    return _graph_store


def reset_dependencies() -> None:
    """
    Reset all singletons. Useful for testing.

    This allows tests to inject mock dependencies by resetting
    the module state between test cases.
    """
    global _settings, _embedder, _vector_index, _recommendation_service
    global _explanation_generator, _history_store, _graph_store

    _settings = None
    _embedder = None
    _vector_index = None
    _recommendation_service = None
    _explanation_generator = None
    _history_store = None
    _graph_store = None


def _build_faiss_index(settings: Settings) -> VectorIndex:
    from app.infrastructure.search.faiss_vector_index import FaissVectorIndex

    catalog_path = Path(settings.catalog_path)
    books = FaissVectorIndex.load_catalog(str(catalog_path)) if catalog_path.exists() else []
    index = FaissVectorIndex(books, dimension=settings.embedding_dimension)

    indexes_dir = Path(settings.indexes_dir)
    if (indexes_dir / "faiss_index.bin").exists():
        index.load_index(str(indexes_dir))
    elif books:
        logger.info(f"No persisted FAISS index in {indexes_dir}, building from catalog")
        index.build_index(get_embedder())
        index.save_index(str(indexes_dir))
    else:
        logger.warning(f"Catalog {catalog_path} not found; FAISS index is empty")
    return index
