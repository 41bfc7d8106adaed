"""
Pinecone implementation of the VectorIndex port, over its REST API.

The adapter talks to the index host directly with `requests`:
    POST {host}/query  {vector, topK, filter?, includeMetadata}
and decodes each match's metadata into a Book. Malformed matches are
skipped, transport and HTTP errors become ExternalServiceError.

Pinecone has no metadata-only query, so metadata lookups send a neutral
unit vector together with a metadata filter. Its filter language has no
substring operator either, so a partial match is approximated:
- numeric fields ("rating", "year", ...) use $gte (e.g. rating >= 4.5),
- text fields use $in over common case variants of the value.

The HTTP session is injected for testability, like the other adapters.
"""

import logging
import math
from typing import Any, Dict, List, Optional

import requests

from app.domain.entities import Book
from app.domain.errors import ExternalServiceError, SerializationError
from app.domain.ports import VectorIndex
from app.infrastructure.search.book_mapper import books_from_records

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = frozenset({"rating", "year", "ratings_count", "page_count"})
DEFAULT_TIMEOUT_SECONDS = 30


class PineconeVectorIndex(VectorIndex):
    """
    Vector index backed by a Pinecone serverless or pod index.

    Usage:
        index = PineconeVectorIndex(
            api_key="...",
            host="https://books-abc123.svc.us-east-1.pinecone.io",
            dimension=512,
        )
        books = index.query_by_metadata("author", "Ursula K. Le Guin", False, 10)
    """

    def __init__(
        self,
        api_key: str,
        host: str,
        dimension: int,
        namespace: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[Any] = None,
    ) -> None:
        """
        Args:
            api_key: Pinecone API key
            host: Index host URL (with or without scheme)
            dimension: Vector dimension of the index
            namespace: Optional namespace to query
            timeout: Request timeout in seconds
            session: Optional HTTP session; a requests.Session() by default
        """
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")

        self._api_key = api_key
        self._host = self._normalize_host(host)
        self._dimension = dimension
        self._namespace = namespace
        self._timeout = timeout
        self._session = session if session is not None else requests.Session()

    @classmethod
    def from_environment(
        cls,
        api_key: str,
        environment: str,
        index_name: str,
        dimension: int,
        session: Optional[Any] = None,
    ) -> "PineconeVectorIndex":
        """Build the legacy pod host https://{index}.svc.{environment}.pinecone.io."""
        host = f"https://{index_name}.svc.{environment}.pinecone.io"
        return cls(api_key=api_key, host=host, dimension=dimension, session=session)

    def query_by_vector(self, vector: List[float], top_k: int) -> List[Book]:
        if len(vector) != self._dimension:
            raise ValueError(
                f"Query vector has dimension {len(vector)}, index expects {self._dimension}"
            )
        return self._query(list(vector), top_k)

    def query_by_metadata(
        self,
        field: str,
        value: str,
        exact_match: bool,
        top_k: int,
    ) -> List[Book]:
        metadata_filter = self.build_filter(field, value, exact_match)
        return self._query(self._neutral_vector(), top_k, metadata_filter)

    def is_ready(self) -> bool:
        return bool(self._api_key and self._host)

    @staticmethod
    def build_filter(field: str, value: str, exact_match: bool) -> Dict[str, Any]:
        """
        Pinecone metadata filter for one field.

        Examples:
            build_filter("author", "Frank Herbert", True)
                -> {"author": {"$eq": "Frank Herbert"}}
            build_filter("rating", "4.5", False)
                -> {"rating": {"$gte": 4.5}}
        """
        if field in NUMERIC_FIELDS:
            try:
                number: Any = float(value)
            except ValueError as e:
                raise ValueError(f"Field '{field}' needs a numeric value, got '{value}'") from e
            if field != "rating":
                number = int(number)
            return {field: {"$eq" if exact_match else "$gte": number}}

        if exact_match:
            return {field: {"$eq": value}}

        variants = []
        for variant in (value, value.lower(), value.title(), value.upper(), value.capitalize()):
            if variant not in variants:
                variants.append(variant)
        return {field: {"$in": variants}}

    # =========================================================================
    # Private helper methods
    # =========================================================================

    def _query(
        self,
        vector: List[float],
        top_k: int,
        metadata_filter: Optional[Dict[str, Any]] = None,
    ) -> List[Book]:
        payload: Dict[str, Any] = {
            "vector": vector,
            "topK": top_k,
            "includeMetadata": True,
            "includeValues": False,
        }
        if metadata_filter:
            payload["filter"] = metadata_filter
        if self._namespace:
            payload["namespace"] = self._namespace

        headers = {
            "Api-Key": self._api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            response = self._session.post(
                f"{self._host}/query",
                json=payload,
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise ExternalServiceError(f"Pinecone query failed: {e}") from e
        except ValueError as e:
            raise ExternalServiceError(f"Pinecone returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise SerializationError(f"Unexpected Pinecone response: {type(data).__name__}")

        matches = data.get("matches") or []
        books = books_from_records(
            (match.get("id"), match.get("metadata") or {}) for match in matches
            if isinstance(match, dict)
        )
        logger.debug(f"Pinecone query returned {len(books)}/{len(matches)} books")
        return books

    def _neutral_vector(self) -> List[float]:
        value = 1.0 / math.sqrt(self._dimension)
        return [value] * self._dimension

    @staticmethod
    def _normalize_host(host: str) -> str:
        host = (host or "").strip().rstrip("/")
        if host and not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        return host
