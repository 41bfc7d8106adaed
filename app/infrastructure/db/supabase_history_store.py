"""
Supabase (PostgREST) implementation of the HistoryStore port.

Rows live in the `search_history` table:
    id, user_id, query, recommendations (jsonb array of book records), created_at

Requests go through the PostgREST endpoint with `requests`:
    GET  {url}/rest/v1/search_history?user_id=eq.X&order=created_at.desc&limit=N
    POST {url}/rest/v1/search_history
"""

import logging
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

import requests

from app.domain.entities import SearchHistory
from app.domain.errors import ExternalServiceError, SerializationError
from app.domain.ports import HistoryStore
from app.infrastructure.search.book_mapper import book_to_metadata, books_from_records

logger = logging.getLogger(__name__)

TABLE_NAME = "search_history"
DEFAULT_TIMEOUT_SECONDS = 10


class SupabaseHistoryStore(HistoryStore):
    """
    Search history persisted in Supabase.

    Usage:
        store = SupabaseHistoryStore(url="https://xyz.supabase.co", api_key="...")
        store.save(SearchHistory(user_id="u1", query="space opera", recommendations=books))
        recent = store.list("u1", limit=5)
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[Any] = None,
    ) -> None:
        self._endpoint = f"{url.rstrip('/')}/rest/v1/{TABLE_NAME}"
        self._api_key = api_key
        self._timeout = timeout
        self._session = session if session is not None else requests.Session()

    def save(self, history: SearchHistory) -> None:
        row = self.to_row(history)
        headers = {**self._headers(), "Prefer": "return=minimal"}

        try:
            response = self._session.post(
                self._endpoint, json=row, headers=headers, timeout=self._timeout
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise ExternalServiceError(f"Failed to save search history: {e}") from e

        logger.info(
            f"Saved search history for user '{history.user_id}' "
            f"({len(history.recommendations)} recommendations)"
        )

    def list(self, user_id: str, limit: int = 10) -> List[SearchHistory]:
        params = {
            "select": "*",
            "user_id": f"eq.{user_id}",
            "order": "created_at.desc",
            "limit": str(limit),
        }

        try:
            response = self._session.get(
                self._endpoint, params=params, headers=self._headers(), timeout=self._timeout
            )
            response.raise_for_status()
            rows = response.json()
        except requests.RequestException as e:
            raise ExternalServiceError(f"Failed to load search history: {e}") from e
        except ValueError as e:
            raise ExternalServiceError(f"Supabase returned invalid JSON: {e}") from e

        if not isinstance(rows, list):
            raise SerializationError("Search history response must be a JSON array")

        histories = []
        for row in rows:
            try:
                histories.append(self.from_row(row))
            except SerializationError as e:
                logger.warning(f"Skipping malformed search history row: {e}")
        return histories

    @staticmethod
    def to_row(history: SearchHistory) -> Dict[str, Any]:
        recommendations = []
        for book in history.recommendations:
            record = book_to_metadata(book)
            if book.id:
                record["id"] = book.id
            recommendations.append(record)

        row: Dict[str, Any] = {
            "user_id": history.user_id,
            "query": history.query,
            "recommendations": recommendations,
            "created_at": history.created_at.isoformat(),
        }
        if history.id:
            row["id"] = history.id
        return row

    @staticmethod
    def from_row(row: Any) -> SearchHistory:
        """
        Raises:
            SerializationError: If the row is missing required columns
        """
        if not isinstance(row, dict):
            raise SerializationError(f"Search history row must be an object, got {type(row).__name__}")

        records = row.get("recommendations") or []
        if not isinstance(records, list):
            raise SerializationError("recommendations must be a JSON array")

        books = books_from_records(
            (record.get("id") if isinstance(record, dict) else None, record)
            for record in records
        )

        try:
            return SearchHistory(
                id=str(row["id"]) if row.get("id") is not None else None,
                user_id=row.get("user_id") or "",
                query=row.get("query") or "",
                recommendations=books,
                created_at=_parse_timestamp(row.get("created_at")),
            )
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Invalid search history row: {e}") from e

    # =========================================================================
    # Private helper methods
    # =========================================================================

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }


def _parse_timestamp(value: Any) -> datetime:
    if not value:
        return datetime.now(UTC)
    # PostgREST returns "+00:00" offsets; older payloads may end with "Z".
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
