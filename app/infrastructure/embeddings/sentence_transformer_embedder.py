"""
Local sentence-transformers implementation of the Embedder port.

Runs the model in-process, so it never times out and needs no credentials.
Vectors are resized to the index dimension like the remote embedder's, so
either backend can query the same index.
"""

import logging
from typing import List, Optional

from sentence_transformers import SentenceTransformer

from app.domain.errors import EmbeddingError, EmbeddingErrorKind
from app.domain.ports import Embedder
from app.infrastructure.embeddings.vector_utils import fit_dimension

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder(Embedder):
    """
    Embedder backed by a local SentenceTransformer model.

    "all-MiniLM-L6-v2" is a good balance of speed and quality and
    produces 384-dimensional embeddings before resizing.
    """

    def __init__(
        self,
        model_name: str = "all-MiniLM-L6-v2",
        dimension: Optional[int] = None,
        model: Optional[SentenceTransformer] = None,
    ) -> None:
        """
        Args:
            model_name: Name of the sentence-transformers model to load
            dimension: Output length; defaults to the model's native dimension
            model: Optional preloaded model (skips loading by name)
        """
        self._model = model if model is not None else SentenceTransformer(model_name)
        self._model_name = model_name
        native = self._model.get_sentence_embedding_dimension()
        self._dimension = dimension if dimension is not None else native

        logger.info(
            f"Initialized SentenceTransformerEmbedder with model '{model_name}' "
            f"(native dimension={native}, output dimension={self._dimension})"
        )

    def encode(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ValueError("Cannot generate embedding for empty text")

        try:
            embedding = self._model.encode(text, convert_to_numpy=True)
        except RuntimeError as e:
            raise EmbeddingError(f"Local model inference failed: {e}", EmbeddingErrorKind.OTHER) from e

        return fit_dimension(embedding, self._dimension)

    def get_dimension(self) -> int:
        return self._dimension

    def is_ready(self) -> bool:
        return self._model is not None
