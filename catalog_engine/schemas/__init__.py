"""Pydantic value objects exchanged with the catalog engine."""

from catalog_engine.schemas.common import BaseSchema
from catalog_engine.schemas.product import DetailedRating, Product, StockRecord, StockSummary
from catalog_engine.schemas.recommendation import (
    RecommendationKind,
    RecommendationRequest,
    RecommendationResult,
)
from catalog_engine.schemas.search import SearchFilters, SearchResult, SortOption

__all__ = [
    "BaseSchema",
    "DetailedRating",
    "Product",
    "StockRecord",
    "StockSummary",
    "RecommendationKind",
    "RecommendationRequest",
    "RecommendationResult",
    "SearchFilters",
    "SearchResult",
    "SortOption",
]
