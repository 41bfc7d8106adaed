"""
Tests for SupabaseHistoryStore.

These tests use a mocked requests session to avoid calling Supabase.
"""

from datetime import datetime, UTC

import pytest
import requests
from unittest.mock import Mock

from app.domain.entities import Book, SearchHistory
from app.domain.errors import ExternalServiceError, SerializationError
from app.infrastructure.db.supabase_history_store import SupabaseHistoryStore


ENDPOINT = "https://xyz.supabase.co/rest/v1/search_history"


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def store(session):
    return SupabaseHistoryStore(url="https://xyz.supabase.co/", api_key="sb-key", session=session)


def make_response(payload=None):
    response = Mock()
    response.json.return_value = payload
    return response


# ============================================================================
# SAVE TESTS
# ============================================================================

class TestSave:

    def test_posts_row_with_minimal_return(self, store, session):
        history = SearchHistory(
            user_id="u1",
            query="space opera",
            recommendations=[Book(id="b1", title="Leviathan Wakes", author="James S. A. Corey", rating=4.3)],
            created_at=datetime(2024, 5, 1, 12, 0, tzinfo=UTC),
        )

        store.save(history)

        args, kwargs = session.post.call_args
        assert args[0] == ENDPOINT
        assert kwargs["headers"]["apikey"] == "sb-key"
        assert kwargs["headers"]["Authorization"] == "Bearer sb-key"
        assert kwargs["headers"]["Prefer"] == "return=minimal"
        assert kwargs["json"] == {
            "user_id": "u1",
            "query": "space opera",
            "recommendations": [
                {
                    "id": "b1",
                    "title": "Leviathan Wakes",
                    "author": "James S. A. Corey",
                    "categories": [],
                    "rating": 4.3,
                }
            ],
            "created_at": "2024-05-01T12:00:00+00:00",
        }

    def test_http_error_is_wrapped(self, store, session):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("401 Unauthorized")
        session.post.return_value = response

        with pytest.raises(ExternalServiceError, match="Failed to save"):
            store.save(SearchHistory(user_id="u1", query="space opera"))


# ============================================================================
# LIST TESTS
# ============================================================================

class TestList:

    def test_queries_latest_rows_for_user(self, store, session):
        session.get.return_value = make_response([])

        store.list("u1", limit=5)

        kwargs = session.get.call_args.kwargs
        assert kwargs["params"] == {
            "select": "*",
            "user_id": "eq.u1",
            "order": "created_at.desc",
            "limit": "5",
        }

    def test_rows_are_decoded(self, store, session):
        session.get.return_value = make_response(
            [
                {
                    "id": 7,
                    "user_id": "u1",
                    "query": "space opera",
                    "recommendations": [{"id": "b1", "title": "Leviathan Wakes", "rating": "4.3"}],
                    "created_at": "2024-05-01T12:00:00Z",
                }
            ]
        )

        histories = store.list("u1")

        assert len(histories) == 1
        assert histories[0].id == "7"
        assert histories[0].recommendations[0].rating == 4.3
        assert histories[0].created_at == datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

    def test_malformed_rows_are_skipped(self, store, session):
        session.get.return_value = make_response(
            [
                {"user_id": "u1", "query": ""},
                "not a row",
                {"user_id": "u1", "query": "dune", "recommendations": "oops"},
                {"user_id": "u1", "query": "dune"},
            ]
        )

        histories = store.list("u1")

        assert [history.query for history in histories] == ["dune"]

    def test_non_array_response(self, store, session):
        session.get.return_value = make_response({"message": "oops"})

        with pytest.raises(SerializationError):
            store.list("u1")

    def test_transport_error_is_wrapped(self, store, session):
        session.get.side_effect = requests.Timeout("timed out")

        with pytest.raises(ExternalServiceError, match="Failed to load"):
            store.list("u1")


def test_naive_timestamp_is_assumed_utc():
    history = SupabaseHistoryStore.from_row(
        {"user_id": "u1", "query": "dune", "created_at": "2024-05-01T12:00:00"}
    )

    assert history.created_at.tzinfo is not None
