"""Product recommendations: similar, complementary, trending and category trending."""

import logging
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from catalog_engine.core.config import get_settings
from catalog_engine.core.exceptions import CatalogUnavailableError
from catalog_engine.core.logging_config import query_context
from catalog_engine.schemas.product import Product
from catalog_engine.schemas.recommendation import (
    RecommendationConfig,
    RecommendationKind,
    RecommendationRequest,
    RecommendationResult,
    UserPreferences,
)
from catalog_engine.services.catalog_store import CatalogSnapshot, CatalogStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PopularityScores:
    """Catalog-wide popularity per category and brand for one load generation."""

    generation: int
    categories: dict[str, float]
    brands: dict[str, float]


def keyword_overlap(first: Iterable[str], second: Iterable[str]) -> float:
    """Shared keywords over the larger keyword set, case-insensitive; 0 if either is empty."""
    a = {k.lower() for k in first}
    b = {k.lower() for k in second}
    if not a or not b:
        return 0.0
    return len(a & b) / max(len(a), len(b))


def _same(first: str, second: str) -> bool:
    # Blank attributes never count as a match
    return bool(first) and first == second


class RecommendationService:
    """Explainable recommendations computed from the shared catalog."""

    def __init__(self, store: CatalogStore, config: RecommendationConfig | None = None) -> None:
        self.store = store
        self.config = config or get_settings().recommendation_config()
        self._popularity: PopularityScores | None = None

    async def similar_products(self, sku: str, limit: int | None = None) -> RecommendationResult:
        """Products sharing category, brand, web taxonomy and keywords with ``sku``.

        Args:
            sku: Target product
            limit: Max products to return

        Returns:
            RecommendationResult of kind similar; empty with a reason when the
            target is unknown
        """
        snapshot = await self._snapshot()
        target = snapshot.get(sku)
        if target is None:
            return self._not_found(RecommendationKind.SIMILAR)

        ranked = self._rank(
            (p for p in snapshot.products if p.sku != sku),
            lambda p: self.similarity_score(target, p),
            self._limit(limit),
        )
        return RecommendationResult(
            kind=RecommendationKind.SIMILAR,
            products=ranked,
            score=self.config.similar_result_score if ranked else 0.0,
            reason=f"Products similar to {target.display_name} based on category, brand, and attributes",
        )

    async def complementary_products(self, sku: str, limit: int | None = None) -> RecommendationResult:
        """Products from adjacent categories or sibling subcategories of ``sku``."""
        snapshot = await self._snapshot()
        target = snapshot.get(sku)
        if target is None:
            return self._not_found(RecommendationKind.COMPLEMENTARY)

        ranked = self._rank(
            (p for p in snapshot.products if p.sku != sku),
            lambda p: self.complementary_score(target, p),
            self._limit(limit),
        )
        return RecommendationResult(
            kind=RecommendationKind.COMPLEMENTARY,
            products=ranked,
            score=self.config.complementary_result_score if ranked else 0.0,
            reason=f"Products that complement {target.display_name}",
        )

    async def trending_products(
        self,
        category_filter: Sequence[str] | None = None,
        limit: int | None = None,
        brand_filter: Sequence[str] | None = None,
    ) -> RecommendationResult:
        """SF-preferred products ranked by category and brand popularity."""
        snapshot = await self._snapshot()
        categories = set(category_filter or ())
        brands = set(brand_filter or ())

        candidates = [
            p
            for p in snapshot.products
            if p.is_active
            and p.is_sf_preferred
            and (not categories or p.category in categories or p.web_category in categories)
            and (not brands or p.brand in brands)
        ]
        popularity = self._popularity_for(snapshot)
        ranked = self._rank(
            candidates, lambda p: self.trending_score(p, popularity), self._limit(limit), keep_zero=True
        )

        if not ranked:
            return RecommendationResult(
                kind=RecommendationKind.TRENDING, products=[], score=0.0, reason="No trending products available"
            )
        return RecommendationResult(
            kind=RecommendationKind.TRENDING,
            products=ranked,
            score=self.config.trending_result_score,
            reason="SF Preferred products from popular categories",
        )

    async def category_trending(
        self,
        category: str,
        limit: int | None = None,
        brand_filter: Sequence[str] | None = None,
    ) -> RecommendationResult:
        """Active products of one category ranked by the trending formula."""
        snapshot = await self._snapshot()
        brands = set(brand_filter or ())
        candidates = [
            p
            for p in snapshot.products
            if p.is_active
            and category
            and (p.category == category or p.web_category == category)
            and (not brands or p.brand in brands)
        ]
        popularity = self._popularity_for(snapshot)
        ranked = self._rank(
            candidates, lambda p: self.trending_score(p, popularity), self._limit(limit), keep_zero=True
        )

        return RecommendationResult(
            kind=RecommendationKind.CATEGORY_TRENDING,
            products=ranked,
            score=self.config.category_trending_result_score if ranked else 0.0,
            reason=f"Trending products in {category} category" if ranked else f"No products found in {category}",
        )

    async def get_recommendations(self, request: RecommendationRequest) -> list[RecommendationResult]:
        """Compose every applicable recommendation kind for a request.

        Runs similar and complementary for a target SKU, category trending for
        the first categories of the filter, then general trending. User
        preferences narrow every result and empty results are dropped.
        """
        limit = self._limit(request.limit)
        results: list[RecommendationResult] = []

        with query_context():
            if request.target_sku:
                results.append(await self.similar_products(request.target_sku, limit))
                results.append(await self.complementary_products(request.target_sku, limit))

            if request.category_filter:
                for category in request.category_filter[: self.config.max_category_trending]:
                    results.append(await self.category_trending(category, limit, request.brand_filter))

            results.append(await self.trending_products(request.category_filter, limit, request.brand_filter))

            if request.user_preferences is not None:
                results = [
                    r.model_copy(update={"products": self._apply_preferences(r.products, request.user_preferences)})
                    for r in results
                ]

            kept = [r for r in results if r.products]
            logger.debug(
                "Recommendations for %s: %s", request.target_sku, [(r.kind.value, len(r.products)) for r in kept]
            )
        return kept

    def similarity_score(self, target: Product, candidate: Product) -> float:
        """Attribute similarity of ``candidate`` to ``target``, capped at 1."""
        c = self.config
        score = 0.0
        if _same(target.category, candidate.category):
            score += c.similar_category_weight
        if _same(target.brand, candidate.brand):
            score += c.similar_brand_weight
        if _same(target.web_category, candidate.web_category):
            score += c.similar_web_category_weight
        if _same(target.web_sub_category, candidate.web_sub_category):
            score += c.similar_web_subcategory_weight
        if candidate.is_sf_preferred:
            score += c.similar_preferred_weight
        score += keyword_overlap(target.keywords, candidate.keywords) * c.similar_keyword_weight
        return min(score, 1.0)

    def complementary_score(self, target: Product, candidate: Product) -> float:
        c = self.config
        score = 0.0
        if _same(target.category, candidate.category) and target.web_sub_category != candidate.web_sub_category:
            score += c.complementary_category_weight
        if candidate.category and candidate.category in c.complements_of(target.category):
            score += c.complementary_pair_bonus
        if candidate.is_sf_preferred:
            score += c.complementary_preferred_weight
        return min(score, 1.0)

    def trending_score(self, product: Product, popularity: PopularityScores) -> float:
        c = self.config
        score = c.trending_preferred_weight if product.is_sf_preferred else 0.0
        score += popularity.categories.get(product.category, 0) / c.popularity_normalizer * c.trending_category_weight
        score += popularity.brands.get(product.brand, 0) / c.popularity_normalizer * c.trending_brand_weight
        return score

    def _popularity_for(self, snapshot: CatalogSnapshot) -> PopularityScores:
        """Popularity per category and brand, recomputed once per load generation."""
        cached = self._popularity
        if cached is not None and cached.generation == snapshot.generation:
            return cached

        weight = self.config.popularity_preferred_weight
        category_counts: Counter[str] = Counter()
        category_preferred: Counter[str] = Counter()
        brand_counts: Counter[str] = Counter()
        brand_preferred: Counter[str] = Counter()
        for product in snapshot.products:
            if product.category:
                category_counts[product.category] += 1
                category_preferred[product.category] += product.is_sf_preferred
            if product.brand:
                brand_counts[product.brand] += 1
                brand_preferred[product.brand] += product.is_sf_preferred

        popularity = PopularityScores(
            generation=snapshot.generation,
            categories={k: weight * category_preferred[k] + n for k, n in category_counts.items()},
            brands={k: weight * brand_preferred[k] + n for k, n in brand_counts.items()},
        )
        self._popularity = popularity
        logger.debug(
            "Popularity computed for generation %d: %d categories, %d brands",
            snapshot.generation,
            len(popularity.categories),
            len(popularity.brands),
        )
        return popularity

    async def _snapshot(self) -> CatalogSnapshot:
        snapshot = await self.store.initialize()
        if self.store.load_failed:
            raise CatalogUnavailableError("Catalog failed to load; recommendations are unavailable")
        return snapshot

    def _limit(self, limit: int | None) -> int:
        if limit is None or limit <= 0:
            return self.config.default_limit
        return limit

    @staticmethod
    def _rank(
        candidates: Iterable[Product],
        score: Callable[[Product], float],
        limit: int,
        *,
        keep_zero: bool = False,
    ) -> list[Product]:
        """Score candidates, keep positive scores (or all), best first, SKU breaking ties."""
        scored = [(score(p), p) for p in candidates]
        if not keep_zero:
            scored = [(s, p) for s, p in scored if s > 0]
        scored.sort(key=lambda item: (-item[0], item[1].sku))
        return [p for _, p in scored[:limit]]

    @staticmethod
    def _apply_preferences(products: list[Product], preferences: UserPreferences) -> list[Product]:
        filtered = products
        if preferences.sf_preferred is not None:
            filtered = [p for p in filtered if p.is_sf_preferred == preferences.sf_preferred]
        if preferences.price_range is not None:
            price_range = preferences.price_range
            filtered = [p for p in filtered if price_range.contains(p.price)]
        return filtered

    @staticmethod
    def _not_found(kind: RecommendationKind) -> RecommendationResult:
        return RecommendationResult(kind=kind, products=[], score=0.0, reason="Product not found")
