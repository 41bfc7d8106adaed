"""
Port interfaces (protocols) for the domain layer.

Ports define the contracts between the domain and infrastructure layers.
They are implemented by adapters in the infrastructure layer, allowing
the domain to remain independent of technical details (which embedding
provider, which vector database, which graph or history store).

Following Hexagonal Architecture principles, the domain layer depends only
on these abstract protocols, never on concrete implementations.
"""

from typing import Protocol, List, Optional

from .entities import Book, SearchHistory, BookGraph, BookNode, GraphStats


class Embedder(Protocol):
    """
    Port for turning text into a fixed-length embedding vector.

    Implementations must classify every failure at the point where the
    transport error is caught, raising EmbeddingError with the matching
    EmbeddingErrorKind. Callers never inspect error messages.
    """

    def encode(self, text: str) -> List[float]:
        """
        Generate an embedding vector for the given text.

        Args:
            text: The text to embed (typically the raw user query)

        Returns:
            A list of floats whose length equals get_dimension()

        Raises:
            EmbeddingError: With kind TIMEOUT, RATE_LIMITED, AUTH or OTHER
        """
        ...

    def get_dimension(self) -> int:
        """
        Get the dimensionality of the produced vectors.

        Returns:
            The embedding dimension shared with the VectorIndex
        """
        ...

    def is_ready(self) -> bool:
        """
        Check if the embedder is configured and able to serve requests.

        Returns:
            True if encode() can be called
        """
        ...


class VectorIndex(Protocol):
    """
    Port for the external store holding books and their embeddings.

    Results are already deserialized into Book values. A single malformed
    item is skipped (and logged) by the implementation; it never fails the
    whole query.
    """

    def query_by_vector(self, vector: List[float], top_k: int) -> List[Book]:
        """
        Nearest-neighbour search.

        Args:
            vector: Query embedding
            top_k: Maximum number of books to return

        Returns:
            Books ordered by decreasing similarity

        Raises:
            ExternalServiceError: If the index cannot be queried
        """
        ...

    def query_by_metadata(
        self,
        field: str,
        value: str,
        exact_match: bool,
        top_k: int,
    ) -> List[Book]:
        """
        Lookup by a single metadata field.

        Args:
            field: Metadata field name ("author", "categories", "title",
                   "description", "rating", "year")
            value: Value to look for, always passed as a string
            exact_match: Whether the value must match exactly; otherwise the
                         backend applies its notion of a partial match
            top_k: Maximum number of books to return

        Returns:
            Matching books

        Raises:
            ExternalServiceError: If the index cannot be queried
        """
        ...

    def is_ready(self) -> bool:
        """
        Check if the index is available for queries.

        Returns:
            True if the index can serve queries
        """
        ...


class HistoryStore(Protocol):
    """Port for persisting recommendation requests per user."""

    def save(self, history: SearchHistory) -> None:
        """
        Persist one search.

        Raises:
            ExternalServiceError: If the store rejects the write
        """
        ...

    def list(self, user_id: str, limit: int = 10) -> List[SearchHistory]:
        """
        Most recent searches of a user, newest first.

        Raises:
            ExternalServiceError: If the store cannot be read
        """
        ...


class GraphStore(Protocol):
    """Port for read-only traversal of the book similarity graph."""

    def get_book_by_id(self, book_id: str) -> Optional[BookNode]:
        ...

    def get_book_graph(self, book_id: str, depth: int = 2) -> BookGraph:
        """
        Neighbourhood of a book up to `depth` hops.

        Returns:
            BookGraph with the source node first; empty if the book is unknown
        """
        ...

    def get_similar_books(self, book_id: str, limit: int = 20) -> List[BookNode]:
        """Books linked by SIMILAR_TO, strongest edge first."""
        ...

    def search_books(self, pattern: str, limit: int = 20) -> List[BookNode]:
        """Books whose title contains `pattern` (case-insensitive), best rated first."""
        ...

    def get_graph_stats(self) -> GraphStats:
        ...
