#!/usr/bin/env python3
"""
Local Index Building Script.

Builds the FAISS index used by the local vector backend
(VECTOR_BACKEND=faiss) from a JSON book catalog:
1. Load the catalog (JSON array of book records)
2. Embed every book with the configured embedder and build the FAISS index
3. Persist the index and its id mapping
4. Run a smoke test with RecommendationService to verify the system works

Usage:
    python -m scripts.build_index --catalog data/catalog.json --out-dir data/indexes

Args:
    --catalog: Path to the JSON catalog (default: $CATALOG_PATH or data/catalog.json)
    --out-dir: Directory for storing the index (default: $INDEXES_DIR or data/indexes)
    --smoke-test-query: Query for the smoke test (default: 'fantasy books')
    --skip-smoke-test: Only build and save the index
"""

import argparse
import logging
import sys

from app.api.v1.dependencies import get_embedder, get_settings
from app.domain.errors import BookRecommenderError
from app.domain.services import RecommendationService
from app.infrastructure.search.faiss_vector_index import FaissVectorIndex

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def build_index(catalog_path: str, out_dir: str) -> FaissVectorIndex:
    """
    Steps 1-3: load the catalog, embed it and persist the FAISS index.

    Returns:
        FaissVectorIndex ready for queries
    """
    logger.info("=" * 70)
    logger.info("STEP 1: LOADING CATALOG")
    logger.info("=" * 70)

    settings = get_settings()
    books = FaissVectorIndex.load_catalog(catalog_path)
    logger.info(f"Loaded {len(books)} books from {catalog_path}")

    logger.info("=" * 70)
    logger.info("STEP 2: BUILDING FAISS INDEX")
    logger.info("=" * 70)

    embedder = get_embedder()
    index = FaissVectorIndex(books, dimension=settings.embedding_dimension)
    index.build_index(embedder)

    logger.info("=" * 70)
    logger.info("STEP 3: SAVING INDEX")
    logger.info("=" * 70)

    index.save_index(out_dir)
    return index


def run_smoke_test(index: FaissVectorIndex, query: str) -> bool:
    """
    Step 4: Run one recommendation end to end.

    Returns:
        True if at least one book was recommended
    """
    logger.info("=" * 70)
    logger.info("STEP 4: SMOKE TEST")
    logger.info("=" * 70)

    service = RecommendationService(embedder=get_embedder(), vector_index=index)
    result = service.get_recommendations(query, top_k=5)

    logger.info(f"Query: '{query}' (pattern={result.enhanced_query.pattern.value})")
    for rank, book in enumerate(result.books, start=1):
        logger.info(f"  {rank}. {book.title} - {book.author} ({book.rating:.1f})")

    if not result.books:
        logger.warning("Smoke test returned no books")
        return False
    return True


def main() -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Build the local FAISS book index")
    parser.add_argument("--catalog", default=settings.catalog_path)
    parser.add_argument("--out-dir", default=settings.indexes_dir)
    parser.add_argument("--smoke-test-query", default="fantasy books")
    parser.add_argument("--skip-smoke-test", action="store_true")
    args = parser.parse_args()

    try:
        index = build_index(args.catalog, args.out_dir)
        if args.skip_smoke_test:
            return 0
        return 0 if run_smoke_test(index, args.smoke_test_query) else 1
    except (OSError, ValueError, BookRecommenderError) as e:
        logger.error(f"Index build failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
