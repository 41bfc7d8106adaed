"""
Domain services package.

Services orchestrate domain logic that doesn't naturally belong to a single
entity. They coordinate between entities and ports to implement use cases.

Following Hexagonal Architecture principles, services depend only on domain
entities, value objects, and port protocols (never on concrete implementations).
"""

from .query_parser import QueryIntentParser
from .query_enhancer import QueryEnhancer
from .strategy_planner import SearchStrategyPlanner
from .fallback_search import FallbackSearcher
from .hybrid_search import HybridSearchExecutor
from .ranking import ResultRanker
from .explanations import ExplanationGenerator
from .recommendation_service import RecommendationService

__all__ = [
    "QueryIntentParser",
    "QueryEnhancer",
    "SearchStrategyPlanner",
    "FallbackSearcher",
    "HybridSearchExecutor",
    "ResultRanker",
    "ExplanationGenerator",
    "RecommendationService",
]
