"""Pydantic schemas for product recommendations."""

import enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from catalog_engine.schemas.common import BaseSchema
from catalog_engine.schemas.product import Product
from catalog_engine.schemas.search import PriceRange


class RecommendationKind(str, enum.Enum):
    SIMILAR = "similar"
    TRENDING = "trending"
    COMPLEMENTARY = "complementary"
    CATEGORY_TRENDING = "category_trending"


class UserPreferences(BaseSchema):
    sf_preferred: bool | None = Field(None, alias="sfPreferred")
    price_range: PriceRange | None = None


class RecommendationRequest(BaseSchema):
    """Request for a composed set of recommendations."""

    target_sku: str | None = Field(None, validation_alias=AliasChoices("targetSku", "productSku", "target_sku"))
    category_filter: list[str] | None = None
    brand_filter: list[str] | None = None
    user_preferences: UserPreferences | None = None
    limit: int | None = None


class RecommendationResult(BaseSchema):
    kind: RecommendationKind
    products: list[Product] = []
    score: float = Field(0.0, ge=0.0, le=1.0)
    reason: str = ""


class RecommendationConfig(BaseModel):
    """Weights and domain tables driving the recommendation engine.

    Supplied as data so the engine carries no catalog-specific knowledge.
    """

    model_config = ConfigDict(frozen=True)

    complementary_categories: dict[str, list[str]] = {}

    popularity_preferred_weight: float = 2.0
    popularity_normalizer: float = 1000.0

    similar_category_weight: float = 0.4
    similar_brand_weight: float = 0.3
    similar_web_category_weight: float = 0.2
    similar_web_subcategory_weight: float = 0.1
    similar_preferred_weight: float = 0.1
    similar_keyword_weight: float = 0.2

    trending_preferred_weight: float = 0.5
    trending_category_weight: float = 0.3
    trending_brand_weight: float = 0.2

    complementary_category_weight: float = 0.4
    complementary_pair_bonus: float = 0.3
    complementary_preferred_weight: float = 0.1

    similar_result_score: float = Field(0.8, ge=0.0, le=1.0)
    complementary_result_score: float = Field(0.7, ge=0.0, le=1.0)
    trending_result_score: float = Field(0.9, ge=0.0, le=1.0)
    category_trending_result_score: float = Field(0.8, ge=0.0, le=1.0)

    default_limit: int = Field(10, ge=1)
    max_category_trending: int = Field(2, ge=0)

    def complements_of(self, category: str) -> list[str]:
        return self.complementary_categories.get(category, [])
