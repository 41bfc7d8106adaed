"""
Maps a query intent to a search strategy.
"""

from app.domain.value_objects import IntentKind, MetadataFilter, QueryIntent, SearchStrategy

AUTHOR_SEMANTIC_WEIGHT = 0.3
GENRE_SEMANTIC_WEIGHT = 0.7


class SearchStrategyPlanner:
    """
    Pure mapping from intent to strategy, total over every intent kind.

    Author and genre intents are cheap to act on through a metadata filter,
    so they run hybrid (filter first, then semantic to fill up). Everything
    else is a purely semantic search.
    """

    def plan(self, intent: QueryIntent) -> SearchStrategy:
        if intent.kind == IntentKind.AUTHOR:
            return SearchStrategy(
                metadata_filter=MetadataFilter(field="author", value=intent.name, exact_match=False),
                semantic_weight=AUTHOR_SEMANTIC_WEIGHT,
                hybrid=True,
            )

        if intent.kind == IntentKind.GENRE:
            return SearchStrategy(
                metadata_filter=MetadataFilter(field="categories", value=intent.genre, exact_match=False),
                semantic_weight=GENRE_SEMANTIC_WEIGHT,
                hybrid=True,
            )

        return SearchStrategy(metadata_filter=None, semantic_weight=1.0, hybrid=False)
