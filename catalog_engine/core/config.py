"""Engine configuration using Pydantic settings."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from catalog_engine.schemas.recommendation import RecommendationConfig

DEFAULT_COMPLEMENTS_PATH = Path(__file__).resolve().parent.parent / "data" / "complementary_categories.json"


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    project_name: str = "Catalog Engine"
    version: str = "0.1.0"

    # Catalog sources (JSON record files)
    products_path: Path | None = None
    stock_path: Path | None = None

    # Search
    match_all_token: str = "*"
    short_query_max_length: int = 3
    default_page_size: int = 20

    # Recommendations
    default_recommendation_limit: int = 10
    max_category_trending: int = 2
    complementary_categories_path: Path = DEFAULT_COMPLEMENTS_PATH

    # Popularity: score = preferred_weight * preferred_count + item_count
    popularity_preferred_weight: float = 2.0
    popularity_normalizer: float = 1000.0

    # Similarity weights
    similar_category_weight: float = 0.4
    similar_brand_weight: float = 0.3
    similar_web_category_weight: float = 0.2
    similar_web_subcategory_weight: float = 0.1
    similar_preferred_weight: float = 0.1
    similar_keyword_weight: float = 0.2

    # Trending weights
    trending_preferred_weight: float = 0.5
    trending_category_weight: float = 0.3
    trending_brand_weight: float = 0.2

    # Complementary weights
    complementary_category_weight: float = 0.4
    complementary_pair_bonus: float = 0.3
    complementary_preferred_weight: float = 0.1

    # Confidence attached to each recommendation kind
    similar_result_score: float = 0.8
    complementary_result_score: float = 0.7
    trending_result_score: float = 0.9
    category_trending_result_score: float = 0.8

    def load_complementary_categories(self) -> dict[str, list[str]]:
        """Read the category complementarity table from its JSON file."""
        with open(self.complementary_categories_path, encoding="utf-8") as fh:
            table = json.load(fh)
        return {str(category): [str(c) for c in complements] for category, complements in table.items()}

    def recommendation_config(self) -> RecommendationConfig:
        """Build the recommendation engine configuration from these settings."""
        return RecommendationConfig(
            complementary_categories=self.load_complementary_categories(),
            popularity_preferred_weight=self.popularity_preferred_weight,
            popularity_normalizer=self.popularity_normalizer,
            similar_category_weight=self.similar_category_weight,
            similar_brand_weight=self.similar_brand_weight,
            similar_web_category_weight=self.similar_web_category_weight,
            similar_web_subcategory_weight=self.similar_web_subcategory_weight,
            similar_preferred_weight=self.similar_preferred_weight,
            similar_keyword_weight=self.similar_keyword_weight,
            trending_preferred_weight=self.trending_preferred_weight,
            trending_category_weight=self.trending_category_weight,
            trending_brand_weight=self.trending_brand_weight,
            complementary_category_weight=self.complementary_category_weight,
            complementary_pair_bonus=self.complementary_pair_bonus,
            complementary_preferred_weight=self.complementary_preferred_weight,
            similar_result_score=self.similar_result_score,
            complementary_result_score=self.complementary_result_score,
            trending_result_score=self.trending_result_score,
            category_trending_result_score=self.category_trending_result_score,
            default_limit=self.default_recommendation_limit,
            max_category_trending=self.max_category_trending,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
