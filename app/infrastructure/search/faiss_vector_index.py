"""
Local FAISS implementation of the VectorIndex port.

Used for development and offline evaluation when no Pinecone index is
available. The whole catalog is held in memory:
- vector queries go through an exact IndexFlatL2 over book embeddings,
- metadata queries are answered by scanning the catalog.

Embeddings are produced by any Embedder (so the index and the query side
always share one model and one dimension). The index and its id mapping can
be persisted next to each other and reloaded without re-embedding.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import faiss
import numpy as np

from app.domain.entities import Book
from app.domain.errors import ExternalServiceError
from app.domain.ports import Embedder, VectorIndex
from app.infrastructure.search.book_mapper import book_to_metadata, books_from_records

logger = logging.getLogger(__name__)

INDEX_FILE = "faiss_index.bin"
MAPPING_FILE = "faiss_id_mapping.json"
NUMERIC_FIELDS = frozenset({"rating", "year", "ratings_count", "page_count"})


class FaissVectorIndex(VectorIndex):
    """
    In-memory catalog plus exact FAISS index.

    Usage:
        index = FaissVectorIndex(FaissVectorIndex.load_catalog("data/catalog.json"), dimension=512)
        index.build_index(embedder)
        index.save_index("data/indexes")
        books = index.query_by_vector(embedder.encode("space opera"), top_k=10)
    """

    def __init__(self, books: List[Book], dimension: int) -> None:
        """
        Args:
            books: Catalog to serve. Books without an id are keyed by title:author.
            dimension: Embedding dimension shared with the Embedder
        """
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")

        self._dimension = dimension
        self._books: Dict[str, Book] = {}
        for book in books:
            self._books.setdefault(book.identity_key(), book)
        self._index: Optional[faiss.IndexFlatL2] = None
        self._id_mapping: List[str] = []

        logger.info(f"Initialized FaissVectorIndex with {len(self._books)} books")

    @staticmethod
    def load_catalog(path: str) -> List[Book]:
        """
        Read a JSON array of book records (the same metadata shape the
        vector store holds). Malformed records are skipped.
        """
        with open(path, "r", encoding="utf-8") as f:
            records = json.load(f)

        if not isinstance(records, list):
            raise ValueError(f"Catalog {path} must contain a JSON array")

        return books_from_records(
            (record.get("id") if isinstance(record, dict) else None, record)
            for record in records
        )

    @staticmethod
    def save_catalog(books: List[Book], path: str) -> None:
        records = []
        for book in books:
            record = book_to_metadata(book)
            if book.id:
                record["id"] = book.id
            records.append(record)

        Path(path).parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(records, f, ensure_ascii=False, indent=2)

    def build_index(self, embedder: Embedder) -> None:
        """
        Embed every catalog book and rebuild the index (full refresh).

        Raises:
            ValueError: If the embedder's dimension differs from the index's
            EmbeddingError: If the embedder fails
        """
        if embedder.get_dimension() != self._dimension:
            raise ValueError(
                f"Embedder dimension {embedder.get_dimension()} does not match "
                f"index dimension {self._dimension}"
            )

        if not self._books:
            logger.warning("No books to index")
            return

        # Sorted for reproducible positions across runs.
        id_mapping = sorted(self._books.keys())
        vectors = [embedder.encode(self._book_text(self._books[key])) for key in id_mapping]

        index = faiss.IndexFlatL2(self._dimension)
        index.add(np.array(vectors, dtype=np.float32))

        self._index = index
        self._id_mapping = id_mapping
        logger.info(f"Built FAISS index with {index.ntotal} vectors")

    def save_index(self, path: str) -> None:
        if self._index is None:
            raise RuntimeError("Cannot save: index has not been built")

        dir_path = Path(path)
        dir_path.mkdir(parents=True, exist_ok=True)
        faiss.write_index(self._index, str(dir_path / INDEX_FILE))
        with open(dir_path / MAPPING_FILE, "w", encoding="utf-8") as f:
            json.dump(self._id_mapping, f, ensure_ascii=False)

        logger.info(f"Saved FAISS index ({self._index.ntotal} vectors) to {path}")

    def load_index(self, path: str) -> None:
        """
        Raises:
            FileNotFoundError: If the index or mapping file is missing
            ValueError: If the mapping does not match the index
        """
        dir_path = Path(path)
        index_path = dir_path / INDEX_FILE
        mapping_path = dir_path / MAPPING_FILE

        if not index_path.exists():
            raise FileNotFoundError(f"Index file not found: {index_path}")

        if not mapping_path.exists():
            raise FileNotFoundError(f"Mapping file not found: {mapping_path}")

        index = faiss.read_index(str(index_path))
        with open(mapping_path, "r", encoding="utf-8") as f:
            id_mapping = json.load(f)

        if len(id_mapping) != index.ntotal:
            raise ValueError(
                f"Mapping size ({len(id_mapping)}) does not match index size ({index.ntotal})"
            )

        if index.d != self._dimension:
            raise ValueError(f"Index dimension {index.d} does not match {self._dimension}")

        self._index = index
        self._id_mapping = id_mapping
        logger.info(f"Loaded FAISS index ({index.ntotal} vectors) from {path}")

    def query_by_vector(self, vector: List[float], top_k: int) -> List[Book]:
        if len(vector) != self._dimension:
            raise ValueError(
                f"Query vector has dimension {len(vector)}, index expects {self._dimension}"
            )

        if self._index is None or self._index.ntotal == 0:
            logger.warning("FAISS index is empty or not built, returning no results")
            return []

        k = min(top_k, self._index.ntotal)
        if k <= 0:
            return []

        query = np.array([vector], dtype=np.float32)
        try:
            _, positions = self._index.search(query, k)
        except RuntimeError as e:
            raise ExternalServiceError(f"FAISS search failed: {e}") from e

        books = []
        for position in positions[0]:
            # FAISS pads with -1 when fewer than k vectors exist.
            if position < 0 or position >= len(self._id_mapping):
                continue
            book = self._books.get(self._id_mapping[position])
            if book is None:
                logger.warning(f"Index position {position} has no catalog book, skipping")
                continue
            books.append(book)
        return books

    def query_by_metadata(
        self,
        field: str,
        value: str,
        exact_match: bool,
        top_k: int,
    ) -> List[Book]:
        matches = []
        for book in self._books.values():
            if self._matches(book, field, value, exact_match):
                matches.append(book)
                if len(matches) >= top_k:
                    break
        return matches

    def is_ready(self) -> bool:
        return self._index is not None and self._index.ntotal > 0

    def get_books(self) -> List[Book]:
        return list(self._books.values())

    # =========================================================================
    # Private helper methods
    # =========================================================================

    @staticmethod
    def _matches(book: Book, field: str, value: str, exact_match: bool) -> bool:
        if field in NUMERIC_FIELDS:
            actual = getattr(book, field, None)
            if actual is None:
                return False
            try:
                wanted = float(value)
            except ValueError:
                return False
            return actual == wanted if exact_match else actual >= wanted

        if field == "categories":
            candidates = list(book.categories)
        else:
            actual = getattr(book, field, None)
            candidates = [actual] if isinstance(actual, str) else []

        needle = value.lower()
        for candidate in candidates:
            if exact_match and candidate.lower() == needle:
                return True
            if not exact_match and needle in candidate.lower():
                return True
        return False

    @staticmethod
    def _book_text(book: Book) -> str:
        parts = [book.title or "", book.author or "", book.description or ""]
        if book.categories:
            parts.append(", ".join(book.categories))
        return ". ".join(part for part in parts if part)

