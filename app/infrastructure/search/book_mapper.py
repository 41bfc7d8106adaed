"""
Lenient decoding of vector-store metadata into domain Book values.

Book metadata is written by several offline jobs and is not uniform:
categories may be a delimited string or a list, numbers may arrive as
strings, and some fields have camelCase aliases. Anything that cannot be
decoded raises SerializationError so callers can skip the item.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.domain.entities import Book
from app.domain.errors import SerializationError

logger = logging.getLogger(__name__)

CATEGORY_SEPARATORS = re.compile(r"[,;|&]")

FIELD_ALIASES = {
    "thumbnail": ("thumbnail", "image_url", "imageUrl"),
    "year": ("year", "publishedYear", "published_year"),
    "ratings_count": ("ratings_count", "ratingsCount"),
    "page_count": ("page_count", "pageCount"),
}


def book_from_metadata(book_id: Optional[str], metadata: Dict[str, Any]) -> Book:
    """
    Build a Book from one metadata record.

    Args:
        book_id: Identifier of the vector, if any
        metadata: Raw metadata dictionary

    Returns:
        Book entity

    Raises:
        SerializationError: If the record is not a mapping or a field has an
                            unusable value
    """
    if not isinstance(metadata, dict):
        raise SerializationError(f"Book metadata must be an object, got {type(metadata).__name__}")

    try:
        return Book(
            id=str(book_id) if book_id not in (None, "") else _optional_str(metadata.get("id")),
            title=_optional_str(metadata.get("title")),
            author=_optional_str(metadata.get("author")),
            description=_optional_str(metadata.get("description")),
            categories=parse_categories(metadata.get("categories")),
            rating=parse_rating(metadata.get("rating")),
            year=parse_optional_int(_aliased(metadata, "year")),
            ratings_count=parse_optional_int(_aliased(metadata, "ratings_count")),
            thumbnail=_optional_str(_aliased(metadata, "thumbnail")),
            page_count=parse_optional_int(_aliased(metadata, "page_count")),
        )
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Invalid book metadata for id '{book_id}': {e}") from e


def books_from_records(records: Iterable[Tuple[Optional[str], Dict[str, Any]]]) -> List[Book]:
    """Decode (id, metadata) pairs, skipping and logging malformed ones."""
    books = []
    for book_id, metadata in records:
        try:
            books.append(book_from_metadata(book_id, metadata))
        except SerializationError as e:
            logger.warning(f"Skipping malformed book record: {e}")
    return books


def book_to_metadata(book: Book) -> Dict[str, Any]:
    """Inverse of book_from_metadata for stores that need a flat record."""
    metadata: Dict[str, Any] = {
        "title": book.title,
        "author": book.author,
        "description": book.description,
        "categories": list(book.categories),
        "rating": book.rating,
        "year": book.year,
        "ratings_count": book.ratings_count,
        "thumbnail": book.thumbnail,
        "page_count": book.page_count,
    }
    return {key: value for key, value in metadata.items() if value is not None}


def parse_categories(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        parts = CATEGORY_SEPARATORS.split(value)
    elif isinstance(value, (list, tuple)):
        parts = [str(item) for item in value if item is not None]
    else:
        raise TypeError(f"categories must be a string or a list, got {type(value).__name__}")
    return [part.strip() for part in parts if part.strip()]


def parse_rating(value: Any) -> float:
    """Float rating; missing or blank values count as 0."""
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    return float(value)


def parse_optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        return int(float(value))
    if isinstance(value, bool):
        raise TypeError("boolean is not a valid integer field")
    return int(value)


def _aliased(metadata: Dict[str, Any], field: str) -> Any:
    for key in FIELD_ALIASES[field]:
        if metadata.get(key) is not None:
            return metadata[key]
    return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
