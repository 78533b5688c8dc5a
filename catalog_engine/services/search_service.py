"""Local product search: text matching, attribute filters, sorting and pagination."""

import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from catalog_engine.core.config import Settings, get_settings
from catalog_engine.core.logging_config import query_context
from catalog_engine.schemas.product import Product, availability_rank, effective_rating
from catalog_engine.schemas.search import SearchFacets, SearchFilters, SearchResult, SortOption
from catalog_engine.services.catalog_store import CatalogSnapshot, CatalogStore
from catalog_engine.services.facet_service import FacetService

logger = logging.getLogger(__name__)

# text_match_desc weights
SKU_EXACT_SCORE = 100
NAME_CONTAINS_SCORE = 50
NAME_PREFIX_BONUS = 25
BRAND_CONTAINS_SCORE = 30
CATEGORY_CONTAINS_SCORE = 20
DESCRIPTION_CONTAINS_SCORE = 10

# Query-independent orderings: (key, reverse)
SORT_KEYS: dict[SortOption, tuple[Callable[[Product], Any], bool]] = {
    SortOption.NAME_ASC: (lambda p: p.display_name.casefold(), False),
    SortOption.NAME_DESC: (lambda p: p.display_name.casefold(), True),
    SortOption.PRICE_ASC: (lambda p: p.price or 0, False),
    SortOption.PRICE_DESC: (lambda p: p.price or 0, True),
    SortOption.AVAILABILITY: (lambda p: availability_rank(p.availability), True),
    SortOption.RECENTLY_PURCHASED: (
        lambda p: (not p.is_sf_preferred, -(p.order_last_month or 0), p.display_name.casefold()),
        False,
    ),
    SortOption.RATING_DESC: (lambda p: (-effective_rating(p).average, -effective_rating(p).count), False),
    SortOption.RATING_ASC: (lambda p: (effective_rating(p).average, -effective_rating(p).count), False),
    SortOption.DISCOUNT_DESC: (lambda p: p.discount_ratio, True),
    SortOption.DISCOUNT_ASC: (lambda p: p.discount_ratio, False),
}


class SearchService:
    """Deterministic search over the in-memory catalog."""

    def __init__(
        self,
        store: CatalogStore,
        settings: Settings | None = None,
        facet_service: FacetService | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self.facet_service = facet_service or FacetService()

    async def search(
        self,
        query: str = "",
        filters: SearchFilters | None = None,
        offset: int = 0,
        limit: int | None = None,
        sort_by: str | SortOption | None = SortOption.RELEVANCE,
    ) -> SearchResult:
        """Search the catalog.

        Args:
            query: Free-text query; empty or the match-all token skips text matching
            filters: Optional attribute filters
            offset: Index of the first product to return
            limit: Page size; non-positive values fall back to the default
            sort_by: Sort strategy name; unknown names fall back to relevance

        Returns:
            SearchResult with the requested page, facets over the whole
            filtered set and the filtered total. Never raises; an unexpected
            failure yields an empty result.
        """
        start = time.perf_counter()
        sort = SortOption.parse(sort_by)
        if isinstance(sort_by, str) and sort_by.strip() and sort.value != sort_by.strip().lower():
            logger.debug("Unknown sort %r, using relevance", sort_by)
        offset = max(offset or 0, 0)
        if limit is None or limit <= 0:
            limit = self.settings.default_page_size

        with query_context():
            try:
                snapshot = await self.store.initialize()
                matched = self._filter(snapshot, query, filters)
                ordered = self._sort(matched, sort, query)
                facets = self.facet_service.compute(ordered, snapshot)
            except Exception:
                logger.exception("Search failed for query %r", query)
                return SearchResult(
                    products=[], facets=SearchFacets(), total=0, query_time_ms=self._elapsed_ms(start)
                )

            elapsed = self._elapsed_ms(start)
            logger.debug(
                "Search query=%r sort=%s total=%d time=%.2fms", query, sort.value, len(ordered), elapsed
            )
        return SearchResult(
            products=list(ordered[offset : offset + limit]),
            facets=facets,
            total=len(ordered),
            query_time_ms=elapsed,
        )

    async def suggest(self, query: str, limit: int = 8) -> list[str]:
        """Autocomplete suggestions drawn from matching product names and brands."""
        if not query or not query.strip() or limit <= 0:
            return []
        with query_context():
            result = await self.search(query, offset=0, limit=limit * 2)
        needle = query.strip().lower()

        suggestions: dict[str, None] = {}
        for product in result.products:
            for candidate in (product.display_name, product.brand):
                if candidate:
                    suggestions.setdefault(candidate, None)
        return [s for s in suggestions if needle in s.lower()][:limit]

    def _filter(
        self,
        snapshot: CatalogSnapshot,
        query: str,
        filters: SearchFilters | None,
    ) -> list[Product]:
        products: list[Product] = [p for p in snapshot.products if p.is_searchable]

        if self._has_query(query):
            terms = query.lower().split()
            products = [p for p in products if self._matches_text(p, terms)]

        if filters:
            for predicate in self._filter_predicates(filters, snapshot):
                products = [p for p in products if predicate(p)]
        return products

    def _has_query(self, query: str) -> bool:
        return bool(query and query.strip() and query.strip() != self.settings.match_all_token)

    def _matches_text(self, product: Product, terms: Sequence[str]) -> bool:
        """Prefix match for one short term, otherwise every term as a substring."""
        if not terms:
            return True
        if len(terms) == 1 and len(terms[0]) <= self.settings.short_query_max_length:
            term = terms[0]
            return any(word.startswith(term) for word in product.searchable_words)
        text = product.searchable_text
        return all(term in text for term in terms)

    @staticmethod
    def _filter_predicates(
        filters: SearchFilters,
        snapshot: CatalogSnapshot,
    ) -> list[Callable[[Product], bool]]:
        """Build one predicate per populated filter; each is an OR over its values."""
        predicates: list[Callable[[Product], bool]] = []

        if filters.categories:
            categories = set(filters.categories)
            predicates.append(lambda p: p.category in categories or p.web_category in categories)

        if filters.brands:
            brands = set(filters.brands)
            predicates.append(lambda p: p.brand in brands)

        if filters.sf_preferred is not None:
            preferred = filters.sf_preferred
            predicates.append(lambda p: p.is_sf_preferred == preferred)

        if filters.availability:
            states = set(filters.availability)
            predicates.append(lambda p: p.availability in states)

        if filters.account_sets:
            account_sets = set(filters.account_sets)
            predicates.append(lambda p: p.account_set in account_sets)

        if filters.warehouses:
            warehouses = set(filters.warehouses)
            predicates.append(lambda p: not warehouses.isdisjoint(snapshot.warehouses_for(p.sku)))

        if filters.allergens:
            # Keeps products containing any listed allergen; this is not an avoidance filter
            allergens = set(filters.allergens)
            predicates.append(lambda p: not allergens.isdisjoint(p.allergens))

        if filters.price_range is not None:
            price_range = filters.price_range
            predicates.append(lambda p: price_range.contains(p.price))

        return predicates

    def _sort(self, products: list[Product], sort: SortOption, query: str) -> list[Product]:
        """Order products; every strategy ends with SKU as the final tie-break."""
        # Stable sorts: order by SKU first so ties under the strategy key stay deterministic
        ordered = sorted(products, key=lambda p: p.sku)
        q = query.strip().lower() if self._has_query(query) else ""

        if sort in SORT_KEYS:
            key, reverse = SORT_KEYS[sort]
            ordered.sort(key=key, reverse=reverse)
        elif sort == SortOption.TEXT_MATCH_DESC:
            ordered.sort(key=lambda p: self.text_match_score(p, q), reverse=True)
        else:
            ordered.sort(key=lambda p: self._relevance_key(p, q))
        return ordered

    def _relevance_key(self, product: Product, q: str) -> tuple[object, ...]:
        """Sort key for the default ordering; False sorts first."""
        if not q:
            return (not product.is_sf_preferred, product.display_name.casefold())

        name = product.display_name.lower()
        prefix_match = False
        if len(q) <= self.settings.short_query_max_length:
            prefix_match = any(word.startswith(q) for word in name.split())
        return (
            product.sku.lower() != q,
            not prefix_match,
            not product.is_sf_preferred,
            product.brand.lower() != q,
            q not in name,
        )

    @staticmethod
    def text_match_score(product: Product, q: str) -> int:
        """Additive relevance score used by the text_match_desc ordering."""
        if not q:
            return 0
        score = 0
        name = product.display_name.lower()
        if product.sku.lower() == q:
            score += SKU_EXACT_SCORE
        if q in name:
            score += NAME_CONTAINS_SCORE
            if name.startswith(q):
                score += NAME_PREFIX_BONUS
        if q in product.brand.lower():
            score += BRAND_CONTAINS_SCORE
        if q in product.category.lower():
            score += CATEGORY_CONTAINS_SCORE
        if q in product.description.lower():
            score += DESCRIPTION_CONTAINS_SCORE
        return score

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return round((time.perf_counter() - start) * 1000, 3)
