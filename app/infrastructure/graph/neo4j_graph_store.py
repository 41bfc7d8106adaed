"""
Neo4j implementation of the GraphStore port over the HTTP transaction API.

Each read is a single auto-committed statement:

    POST {url}/db/{database}/tx/commit
    {"statements": [{"statement": "<cypher>", "parameters": {...}}]}

Rows come back as positional arrays matching the RETURN columns. The graph
itself (nodes and SIMILAR_TO / SAME_AUTHOR / SAME_CATEGORY edges) is built
offline; this adapter only reads it.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from app.domain.entities import BookGraph, BookNode, GraphRelationship, GraphStats
from app.domain.errors import ExternalServiceError
from app.domain.ports import GraphStore

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "neo4j"
DEFAULT_TIMEOUT_SECONDS = 15
MIN_DEPTH = 1
MAX_DEPTH = 5
GRAPH_ROW_LIMIT = 100

_NODE_COLUMNS = (
    "{alias}.id AS id, {alias}.title AS title, {alias}.author AS author, "
    "{alias}.categories AS categories, {alias}.rating AS rating, "
    "{alias}.year AS year, {alias}.description AS description"
)

BOOK_BY_ID_QUERY = (
    "MATCH (b:Book {id: $book_id}) RETURN " + _NODE_COLUMNS.format(alias="b")
)

SIMILAR_BOOKS_QUERY = (
    "MATCH (b:Book {id: $book_id})-[r:SIMILAR_TO]->(similar:Book) "
    "RETURN " + _NODE_COLUMNS.format(alias="similar") + " "
    "ORDER BY r.weight DESC LIMIT $limit"
)

SEARCH_BOOKS_QUERY = (
    "MATCH (b:Book) WHERE toLower(b.title) CONTAINS toLower($pattern) "
    "RETURN " + _NODE_COLUMNS.format(alias="b") + " "
    "ORDER BY b.rating DESC LIMIT $limit"
)

# Depth cannot be a parameter in a variable-length pattern; it is clamped
# to an int before formatting.
BOOK_GRAPH_QUERY = (
    "MATCH path = (b:Book {{id: $book_id}})-[*1..{depth}]-(related:Book) "
    "WHERE related.id <> $book_id "
    "WITH related, relationships(path) AS rels "
    "RETURN DISTINCT " + _NODE_COLUMNS.format(alias="related") + ", "
    "[r IN rels | [startNode(r).id, endNode(r).id, type(r), coalesce(r.weight, 1.0)]] AS edges "
    "LIMIT " + str(GRAPH_ROW_LIMIT)
)

COUNT_BOOKS_QUERY = "MATCH (b:Book) RETURN count(b) AS count"
COUNT_RELATIONSHIPS_QUERY = "MATCH ()-[r]->() RETURN count(r) AS count"


class Neo4jGraphStore(GraphStore):
    """
    Read-only access to the book similarity graph.

    Usage:
        store = Neo4jGraphStore("http://localhost:7474", "neo4j", "secret")
        graph = store.get_book_graph("book-123", depth=2)
    """

    def __init__(
        self,
        url: str,
        user: str,
        password: str,
        database: str = DEFAULT_DATABASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[Any] = None,
    ) -> None:
        self._endpoint = f"{url.rstrip('/')}/db/{database}/tx/commit"
        self._auth = (user, password)
        self._timeout = timeout
        self._session = session if session is not None else requests.Session()

    def get_book_by_id(self, book_id: str) -> Optional[BookNode]:
        rows = self._run(BOOK_BY_ID_QUERY, {"book_id": book_id})
        if not rows:
            return None
        return self._node_from_row(rows[0])

    def get_book_graph(self, book_id: str, depth: int = 2) -> BookGraph:
        """
        Neighbourhood of a book. The depth is clamped to 1..5 and at most
        100 related rows are read. The source node is always first.
        """
        source = self.get_book_by_id(book_id)
        if source is None:
            logger.info(f"Book '{book_id}' not found in graph")
            return BookGraph()

        depth = max(MIN_DEPTH, min(MAX_DEPTH, int(depth)))
        rows = self._run(BOOK_GRAPH_QUERY.format(depth=depth), {"book_id": book_id})

        nodes: Dict[str, BookNode] = {source.id: source}
        relationships: List[GraphRelationship] = []
        seen_edges = set()

        for row in rows:
            node = self._node_from_row(row[:7])
            nodes.setdefault(node.id, node)

            for edge in row[7] or []:
                source_id, target_id, rel_type, weight = edge
                key = (source_id, target_id, rel_type)
                if key in seen_edges:
                    continue
                seen_edges.add(key)
                relationships.append(
                    GraphRelationship(
                        source=source_id,
                        target=target_id,
                        type=rel_type,
                        weight=float(weight if weight is not None else 1.0),
                    )
                )

        logger.info(
            f"Graph for '{book_id}' (depth {depth}): "
            f"{len(nodes)} nodes, {len(relationships)} relationships"
        )
        return BookGraph(nodes=list(nodes.values()), relationships=relationships)

    def get_similar_books(self, book_id: str, limit: int = 20) -> List[BookNode]:
        rows = self._run(SIMILAR_BOOKS_QUERY, {"book_id": book_id, "limit": limit})
        return [self._node_from_row(row) for row in rows]

    def search_books(self, pattern: str, limit: int = 20) -> List[BookNode]:
        rows = self._run(SEARCH_BOOKS_QUERY, {"pattern": pattern, "limit": limit})
        return [self._node_from_row(row) for row in rows]

    def get_graph_stats(self) -> GraphStats:
        books = self._run(COUNT_BOOKS_QUERY, {})
        relationships = self._run(COUNT_RELATIONSHIPS_QUERY, {})
        return GraphStats(
            total_books=int(books[0][0]) if books else 0,
            total_relationships=int(relationships[0][0]) if relationships else 0,
        )

    # =========================================================================
    # Private helper methods
    # =========================================================================

    def _run(self, statement: str, parameters: Dict[str, Any]) -> List[List[Any]]:
        payload = {"statements": [{"statement": statement, "parameters": parameters}]}

        try:
            response = self._session.post(
                self._endpoint,
                json=payload,
                auth=self._auth,
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise ExternalServiceError(f"Neo4j request failed: {e}") from e
        except ValueError as e:
            raise ExternalServiceError(f"Neo4j returned invalid JSON: {e}") from e

        errors = data.get("errors") or []
        if errors:
            message = errors[0].get("message", "unknown error")
            raise ExternalServiceError(f"Neo4j query failed: {message}")

        results = data.get("results") or []
        if not results:
            return []
        return [item.get("row", []) for item in results[0].get("data", [])]

    @staticmethod
    def _node_from_row(row: List[Any]) -> BookNode:
        book_id, title, author, categories, rating, year, description = row
        return BookNode(
            id=str(book_id or ""),
            title=title or "",
            author=author or "",
            categories=list(categories or []),
            rating=float(rating) if rating is not None else None,
            year=int(year) if year else None,
            description=description or None,
        )
