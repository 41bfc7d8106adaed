"""
Hugging Face Inference API implementation of the Embedder port.

Embeddings are requested from the hosted feature-extraction pipeline:

    POST {base_url}/pipeline/feature-extraction/{model}
    Authorization: Bearer <api key>
    {"inputs": "<text>", "options": {"wait_for_model": true, "use_cache": true}}

Every failure is classified here, where the transport error is caught:
- requests.Timeout (connect or read)      -> EmbeddingErrorKind.TIMEOUT
- HTTP 401 / 403                          -> EmbeddingErrorKind.AUTH
- HTTP 429 / 503 after all retries        -> EmbeddingErrorKind.RATE_LIMITED
- anything else (5xx, bad payload, ...)   -> EmbeddingErrorKind.OTHER

Only 429 (rate limited) and 503 (model loading) are retried, with a linear
backoff. Timeouts are not retried: the search pipeline has a cheaper
fallback for them.

Outputs are mean-pooled if the model returns token embeddings, resized to
the index dimension and L2-normalized. The last 100 texts are memoized.
"""

import logging
import re
import threading
import time
from typing import Any, Callable, List, Optional

import requests
from cachetools import LRUCache

from app.domain.errors import EmbeddingError, EmbeddingErrorKind
from app.domain.ports import Embedder
from app.infrastructure.embeddings.vector_utils import fit_dimension, pool_embedding

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api-inference.huggingface.co"
DEFAULT_MODEL_NAME = "BAAI/bge-large-en-v1.5"
EMBEDDING_CACHE_SIZE = 100
RETRYABLE_STATUSES = frozenset({429, 503})
AUTH_STATUSES = frozenset({401, 403})

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class HuggingFaceEmbedder(Embedder):
    """
    Remote embedder with typed failures.

    Usage:
        # Production
        embedder = HuggingFaceEmbedder(api_key="hf_...", dimension=512)
        vector = embedder.encode("cozy mystery novels")

        # Testing (with fake session and no real sleeping)
        embedder = HuggingFaceEmbedder(api_key="k", session=fake_session, sleep=lambda s: None)
    """

    def __init__(
        self,
        api_key: str,
        model_name: str = DEFAULT_MODEL_NAME,
        base_url: str = DEFAULT_BASE_URL,
        dimension: int = 512,
        timeout_seconds: float = 120,
        connect_timeout_seconds: float = 10,
        retry_attempts: int = 3,
        retry_delay_ms: int = 1000,
        session: Optional[Any] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        """
        Args:
            api_key: Hugging Face access token
            model_name: Model id on the hub
            base_url: Inference API base URL
            dimension: Length of the vectors handed to the index
            timeout_seconds: Read timeout of one request
            connect_timeout_seconds: Connect timeout of one request
            retry_attempts: Extra attempts after a 429/503 response
            retry_delay_ms: Base backoff; attempt n waits n * retry_delay_ms
            session: Optional HTTP session; a requests.Session() by default
            sleep: Optional sleep function, injectable for tests
        """
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")

        self._api_key = api_key
        self._model_name = model_name
        self._url = f"{base_url.rstrip('/')}/pipeline/feature-extraction/{model_name}"
        self._dimension = dimension
        self._timeout = (connect_timeout_seconds, timeout_seconds)
        self._retry_attempts = max(0, retry_attempts)
        self._retry_delay_s = retry_delay_ms / 1000
        self._session = session if session is not None else requests.Session()
        self._sleep = sleep if sleep is not None else time.sleep
        self._cache: LRUCache[str, List[float]] = LRUCache(maxsize=EMBEDDING_CACHE_SIZE)
        self._cache_lock = threading.Lock()

    def encode(self, text: str) -> List[float]:
        """
        Embed one text.

        Raises:
            ValueError: If the text is empty after preprocessing
            EmbeddingError: Classified failure (see module docstring)
        """
        cleaned = self.preprocess(text)
        if not cleaned:
            raise ValueError("Cannot generate embedding for empty text")

        with self._cache_lock:
            cached = self._cache.get(cleaned)
            if cached is not None:
                return list(cached)

        start_time = time.time()
        raw = self._request(cleaned)

        try:
            vector = fit_dimension(pool_embedding(raw), self._dimension)
        except (TypeError, ValueError) as e:
            raise EmbeddingError(f"Unexpected embedding payload: {e}", EmbeddingErrorKind.OTHER) from e

        logger.info(
            f"Embedded {len(cleaned)} chars with {self._model_name} "
            f"in {(time.time() - start_time) * 1000:.0f} ms"
        )

        with self._cache_lock:
            self._cache[cleaned] = vector
        return list(vector)

    def get_dimension(self) -> int:
        return self._dimension

    def is_ready(self) -> bool:
        return bool(self._api_key)

    @staticmethod
    def preprocess(text: str) -> str:
        """Replace control characters and collapse runs of whitespace."""
        return " ".join(_CONTROL_CHARS.sub(" ", text or "").split())

    # =========================================================================
    # Private helper methods
    # =========================================================================

    def _request(self, text: str) -> Any:
        payload = {"inputs": text, "options": {"wait_for_model": True, "use_cache": True}}
        headers = {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"}

        attempt = 0
        while True:
            try:
                response = self._session.post(
                    self._url, json=payload, headers=headers, timeout=self._timeout
                )
            except requests.Timeout as e:
                raise EmbeddingError(
                    f"Embedding request timed out: {e}", EmbeddingErrorKind.TIMEOUT
                ) from e
            except requests.RequestException as e:
                raise EmbeddingError(
                    f"Embedding request failed: {e}", EmbeddingErrorKind.OTHER
                ) from e

            status_code = response.status_code
            if status_code in AUTH_STATUSES:
                raise EmbeddingError(
                    f"Embedding API rejected credentials (HTTP {status_code})",
                    EmbeddingErrorKind.AUTH,
                )

            if status_code in RETRYABLE_STATUSES:
                if attempt < self._retry_attempts:
                    attempt += 1
                    delay = self._retry_delay_s * attempt
                    logger.warning(
                        f"Embedding API HTTP {status_code}; retrying in {delay:.2f}s "
                        f"(attempt {attempt}/{self._retry_attempts})"
                    )
                    self._sleep(delay)
                    continue
                raise EmbeddingError(
                    f"Embedding API unavailable after {attempt + 1} attempts (HTTP {status_code})",
                    EmbeddingErrorKind.RATE_LIMITED,
                )

            try:
                response.raise_for_status()
                return response.json()
            except requests.HTTPError as e:
                raise EmbeddingError(
                    f"Embedding API request failed: {e}", EmbeddingErrorKind.OTHER
                ) from e
            except ValueError as e:
                raise EmbeddingError(
                    f"Embedding API returned invalid JSON: {e}", EmbeddingErrorKind.OTHER
                ) from e
