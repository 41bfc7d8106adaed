"""
Tests for HuggingFaceEmbedder.

These tests use a mocked requests session to avoid calling the real
Inference API, and a no-op sleep so retries run instantly.
"""

import pytest
import requests
from unittest.mock import Mock

from app.domain.errors import EmbeddingError, EmbeddingErrorKind
from app.infrastructure.embeddings.huggingface_embedder import EMBEDDING_CACHE_SIZE, HuggingFaceEmbedder


# ============================================================================
# FIXTURES
# ============================================================================

def make_response(status_code=200, payload=None):
    """Mock response with the given status and JSON body."""
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status_code}")
    return response


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def embedder(session, sleeps):
    return HuggingFaceEmbedder(
        api_key="hf_test",
        dimension=4,
        retry_attempts=2,
        retry_delay_ms=500,
        session=session,
        sleep=sleeps.append,
    )


# ============================================================================
# SUCCESS TESTS
# ============================================================================

class TestEncode:
    """Tests for the happy path."""

    def test_posts_to_feature_extraction_pipeline(self, embedder, session):
        session.post.return_value = make_response(payload=[1.0, 0.0, 0.0, 0.0])

        embedder.encode("cozy mysteries")

        args, kwargs = session.post.call_args
        assert args[0] == "https://api-inference.huggingface.co/pipeline/feature-extraction/BAAI/bge-large-en-v1.5"
        assert kwargs["json"]["inputs"] == "cozy mysteries"
        assert kwargs["json"]["options"] == {"wait_for_model": True, "use_cache": True}
        assert kwargs["headers"]["Authorization"] == "Bearer hf_test"
        assert kwargs["timeout"] == (10, 120)

    def test_output_is_resized_and_normalized(self, embedder, session):
        session.post.return_value = make_response(payload=[3.0, 4.0])

        vector = embedder.encode("cozy mysteries")

        assert vector == pytest.approx([0.6, 0.8, 0.0, 0.0])

    def test_token_embeddings_are_mean_pooled(self, embedder, session):
        session.post.return_value = make_response(
            payload=[[[1.0, 0.0, 0.0, 0.0], [0.0, 1.0, 0.0, 0.0]]]
        )

        vector = embedder.encode("cozy mysteries")

        assert vector == pytest.approx([0.7071068, 0.7071068, 0.0, 0.0])

    def test_repeated_text_is_served_from_cache(self, embedder, session):
        session.post.return_value = make_response(payload=[1.0, 0.0, 0.0, 0.0])

        embedder.encode("cozy mysteries")
        embedder.encode("  cozy\n mysteries ")

        assert session.post.call_count == 1

    def test_cache_evicts_least_recently_used_text(self, embedder, session):
        session.post.return_value = make_response(payload=[1.0, 0.0, 0.0, 0.0])

        embedder.encode("text 0")
        for i in range(1, EMBEDDING_CACHE_SIZE):
            embedder.encode(f"text {i}")
        embedder.encode("text 0")
        embedder.encode("one more text")
        assert session.post.call_count == EMBEDDING_CACHE_SIZE + 1

        embedder.encode("text 0")
        assert session.post.call_count == EMBEDDING_CACHE_SIZE + 1

        embedder.encode("text 1")
        assert session.post.call_count == EMBEDDING_CACHE_SIZE + 2

    def test_empty_text_is_rejected(self, embedder, session):
        with pytest.raises(ValueError, match="empty text"):
            embedder.encode(" \t\n ")

        session.post.assert_not_called()

    def test_preprocess_strips_control_characters(self):
        assert HuggingFaceEmbedder.preprocess("dragons\x00and\x07 wizards") == "dragons and wizards"

    def test_readiness_depends_on_api_key(self, session):
        assert HuggingFaceEmbedder(api_key="", session=session).is_ready() is False
        assert HuggingFaceEmbedder(api_key="k", session=session).get_dimension() == 512


# ============================================================================
# ERROR CLASSIFICATION TESTS
# ============================================================================

class TestErrorClassification:
    """Every transport failure is mapped to an EmbeddingErrorKind."""

    def test_timeout(self, embedder, session):
        session.post.side_effect = requests.Timeout("read timed out")

        with pytest.raises(EmbeddingError) as exc_info:
            embedder.encode("cozy mysteries")

        assert exc_info.value.kind == EmbeddingErrorKind.TIMEOUT
        assert exc_info.value.is_timeout is True

    def test_connection_error_is_other(self, embedder, session):
        session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(EmbeddingError) as exc_info:
            embedder.encode("cozy mysteries")

        assert exc_info.value.kind == EmbeddingErrorKind.OTHER

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_auth_failure_is_not_retried(self, embedder, session, sleeps, status_code):
        session.post.return_value = make_response(status_code=status_code)

        with pytest.raises(EmbeddingError) as exc_info:
            embedder.encode("cozy mysteries")

        assert exc_info.value.kind == EmbeddingErrorKind.AUTH
        assert session.post.call_count == 1
        assert sleeps == []

    def test_rate_limit_is_retried_then_succeeds(self, embedder, session, sleeps):
        session.post.side_effect = [
            make_response(status_code=429),
            make_response(status_code=503),
            make_response(payload=[1.0, 0.0, 0.0, 0.0]),
        ]

        vector = embedder.encode("cozy mysteries")

        assert vector == pytest.approx([1.0, 0.0, 0.0, 0.0])
        assert sleeps == [0.5, 1.0]

    def test_rate_limit_exhausts_retries(self, embedder, session, sleeps):
        session.post.return_value = make_response(status_code=429)

        with pytest.raises(EmbeddingError) as exc_info:
            embedder.encode("cozy mysteries")

        assert exc_info.value.kind == EmbeddingErrorKind.RATE_LIMITED
        assert session.post.call_count == 3
        assert len(sleeps) == 2

    def test_server_error_is_other(self, embedder, session):
        session.post.return_value = make_response(status_code=500)

        with pytest.raises(EmbeddingError) as exc_info:
            embedder.encode("cozy mysteries")

        assert exc_info.value.kind == EmbeddingErrorKind.OTHER

    def test_unexpected_payload_is_other(self, embedder, session):
        session.post.return_value = make_response(payload={"error": "model is loading"})

        with pytest.raises(EmbeddingError, match="Unexpected embedding payload") as exc_info:
            embedder.encode("cozy mysteries")

        assert exc_info.value.kind == EmbeddingErrorKind.OTHER
