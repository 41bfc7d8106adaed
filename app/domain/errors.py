"""
Domain error taxonomy.

Every error raised by the recommendation core derives from
BookRecommenderError and also from the builtin exception the API layer
already knows how to translate (ValueError -> 400, LookupError -> 404,
RuntimeError -> 503). Adapters translate transport errors into these types
at the boundary where they are caught.
"""

from enum import Enum


class BookRecommenderError(Exception):
    """Base class for all recommendation errors."""


class InvalidInputError(BookRecommenderError, ValueError):
    """The caller supplied an unusable request (e.g. an empty query)."""


class NotFoundError(BookRecommenderError, LookupError):
    """A requested entity (book, graph node) does not exist."""


class ExternalServiceError(BookRecommenderError, RuntimeError):
    """A collaborating service (vector index, graph, history store) failed."""


class SerializationError(ExternalServiceError):
    """An external payload could not be decoded into a domain object."""


class EmbeddingErrorKind(str, Enum):
    """Classification of embedding failures, decided by the Embedder adapter."""

    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    AUTH = "auth"
    OTHER = "other"


class EmbeddingError(BookRecommenderError, RuntimeError):
    """
    The Embedder could not produce a vector.

    Only EmbeddingErrorKind.TIMEOUT is a soft failure: the search pipeline
    substitutes fallback results for it. Every other kind propagates.
    """

    def __init__(self, message: str, kind: EmbeddingErrorKind = EmbeddingErrorKind.OTHER):
        super().__init__(message)
        self.kind = kind

    @property
    def is_timeout(self) -> bool:
        return self.kind == EmbeddingErrorKind.TIMEOUT

    def __repr__(self) -> str:
        return f"EmbeddingError(kind={self.kind.value!r}, message={str(self)!r})"
