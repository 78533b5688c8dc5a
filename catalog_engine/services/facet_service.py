"""Facet aggregation over a filtered product set."""

from collections import Counter
from collections.abc import Iterable, Sequence

from catalog_engine.schemas.product import Product
from catalog_engine.schemas.search import FacetValue, PriceRangeFacet, SearchFacets
from catalog_engine.services.catalog_store import CatalogSnapshot

# Half-open [min, max) buckets; None is an open upper bound
PRICE_BUCKETS: tuple[tuple[float, float | None], ...] = (
    (0, 10),
    (10, 50),
    (50, 100),
    (100, 500),
    (500, None),
)


class FacetService:
    """Computes value/count breakdowns for the current filter context."""

    def compute(self, products: Sequence[Product], snapshot: CatalogSnapshot) -> SearchFacets:
        """Count distinct products per facet value.

        Args:
            products: The filtered, not yet paginated, result set
            snapshot: Catalog snapshot used for the warehouse stock join

        Returns:
            SearchFacets with every list sorted by count descending
        """
        categories: Counter[str] = Counter()
        brands: Counter[str] = Counter()
        account_sets: Counter[str] = Counter()
        availability: Counter[str] = Counter()
        allergens: Counter[str] = Counter()
        warehouses: Counter[str] = Counter()

        for product in products:
            # A product listed under the same category twice still counts once
            categories.update({c for c in (product.category, product.web_category) if c})
            if product.brand:
                brands[product.brand] += 1
            if product.account_set:
                account_sets[product.account_set] += 1
            if product.availability:
                availability[product.availability] += 1
            allergens.update(set(product.allergens))
            warehouses.update(snapshot.warehouses_for(product.sku))

        return SearchFacets(
            categories=self._to_values(categories),
            brands=self._to_values(brands),
            account_sets=self._to_values(account_sets),
            availability=self._to_values(availability),
            allergens=self._to_values(allergens),
            warehouses=self._to_values(warehouses),
            price_ranges=self._price_ranges(products),
        )

    @staticmethod
    def _to_values(counts: Counter[str]) -> list[FacetValue]:
        ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [FacetValue(value=value, count=count) for value, count in ordered]

    @staticmethod
    def _price_ranges(products: Iterable[Product]) -> list[PriceRangeFacet]:
        counts = [0] * len(PRICE_BUCKETS)
        for product in products:
            if product.price is None:
                continue
            for i, (low, high) in enumerate(PRICE_BUCKETS):
                if product.price >= low and (high is None or product.price < high):
                    counts[i] += 1
                    break
        return [
            PriceRangeFacet(min=low, max=high, count=count)
            for (low, high), count in zip(PRICE_BUCKETS, counts, strict=True)
        ]
