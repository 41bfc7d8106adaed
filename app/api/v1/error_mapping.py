"""
Translation of domain errors into HTTP errors.

    EmbeddingError(AUTH)  -> 401
    ValueError            -> 400
    LookupError           -> 404
    RuntimeError          -> 503
"""

import logging

from fastapi import HTTPException, status

from app.domain.errors import EmbeddingError, EmbeddingErrorKind

logger = logging.getLogger(__name__)


def to_http_exception(error: Exception) -> HTTPException:
    if isinstance(error, EmbeddingError) and error.kind == EmbeddingErrorKind.AUTH:
        logger.error(f"Embedding service rejected credentials: {error}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Embedding service authentication failed",
        )

    if isinstance(error, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))

    if isinstance(error, LookupError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))

    logger.error(f"Request failed: {error!r}")
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(error))
