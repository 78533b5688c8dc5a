"""Unit tests for SearchService text matching, filters, sorting and paging."""

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest

from catalog_engine.core.config import Settings
from catalog_engine.core.exceptions import CatalogLoadError
from catalog_engine.schemas.product import DetailedRating, Product, StockRecord
from catalog_engine.schemas.search import PriceRange, SearchFilters, SortOption
from catalog_engine.services.catalog_loader import CatalogData
from catalog_engine.services.catalog_store import CatalogStore
from catalog_engine.services.search_service import SearchService


@pytest.fixture
def grocery_products(product_factory: Callable[..., Product]) -> list[Product]:
    """Small grocery catalog with competing relevance signals."""
    return [
        product_factory(
            sku="MILK",
            display_name="Whole Dairy Drink",
            description="Fresh milk from local farms",
            brand="Farmhouse",
            category="DAIRY",
            price=2.5,
            discounted_price=2.25,
            availability="Available",
            account_set="A1",
            allergens=["Dairy"],
            keywords=["milk", "fresh"],
            order_last_month=50,
        ),
        product_factory(
            sku="CHOC1",
            display_name="Milk Chocolate Bar",
            brand="Milk",
            category="CONFECTIONERY",
            price=1.2,
            is_sf_preferred=True,
            availability="Available",
            allergens=["Dairy", "Nuts"],
            keywords=["chocolate"],
            order_last_month=1,
        ),
        product_factory(
            sku="WINE1",
            display_name="Semillon Wine",
            brand="Vineyard",
            category="WINE",
            price=15.0,
            discounted_price=12.0,
            availability="Not Available",
            account_set="A2",
            order_last_month=5,
        ),
        product_factory(
            sku="BREAD1",
            display_name="Sourdough Loaf",
            brand="Baker",
            category="BAKERY",
            web_category="BREAD",
            price=4.0,
            is_sf_preferred=True,
            allergens=["Gluten"],
        ),
        product_factory(sku="OLD1", display_name="Old Milk", is_active=False),
        product_factory(sku="DEL1", display_name="Deleted Milk", is_deleted=True),
    ]


@pytest.fixture
def grocery_stock(stock_factory: Callable[..., StockRecord]) -> list[StockRecord]:
    return [
        stock_factory(product_code="MILK", warehouse="NORTH"),
        stock_factory(product_code="MILK", warehouse="SOUTH"),
        stock_factory(product_code="BREAD1", warehouse="SOUTH"),
    ]


@pytest.fixture
def service_factory(
    settings: Settings,
    catalog_store_factory: Callable[..., Any],
    grocery_products: list[Product],
    grocery_stock: list[StockRecord],
) -> Callable[..., Any]:
    async def _create(products: list[Product] | None = None) -> SearchService:
        store = await catalog_store_factory(
            grocery_products if products is None else products,
            grocery_stock,
        )
        return SearchService(store, settings)

    return _create


def skus(products: list[Product]) -> list[str]:
    return [p.sku for p in products]


class TestTextFilter:
    """Tests for free-text matching."""

    @pytest.mark.asyncio
    async def test_exact_sku_match_ranks_first(self, service_factory: Callable[..., Any]) -> None:
        """An exact SKU match beats name, brand and preference signals."""
        service = await service_factory()

        result = await service.search("milk", SearchFilters(), 0, 10, "relevance")

        assert skus(result.products) == ["MILK", "CHOC1"]
        assert result.total == 2

    @pytest.mark.asyncio
    async def test_inactive_and_deleted_never_match(self, service_factory: Callable[..., Any]) -> None:
        service = await service_factory()

        for query in ("milk", "old milk", "deleted", ""):
            result = await service.search(query, limit=50)
            assert not {"OLD1", "DEL1"} & set(skus(result.products))

    @pytest.mark.asyncio
    async def test_short_query_uses_word_prefix(self, service_factory: Callable[..., Any]) -> None:
        """A short single term matches word prefixes only, not inner substrings."""
        service = await service_factory()

        short = await service.search("mil")
        longer = await service.search("mill")

        assert "WINE1" not in skus(short.products)
        assert set(skus(short.products)) == {"MILK", "CHOC1"}
        assert skus(longer.products) == ["WINE1"]

    @pytest.mark.asyncio
    async def test_all_terms_are_required(self, service_factory: Callable[..., Any]) -> None:
        service = await service_factory()

        result = await service.search("whole milk")

        assert skus(result.products) == ["MILK"]

    @pytest.mark.asyncio
    async def test_every_result_contains_every_term(self, service_factory: Callable[..., Any]) -> None:
        service = await service_factory()

        result = await service.search("fresh milk", limit=50)

        assert result.products
        for product in result.products:
            assert "fresh" in product.searchable_text
            assert "milk" in product.searchable_text

    @pytest.mark.asyncio
    async def test_match_all_token_skips_text_filter(self, service_factory: Callable[..., Any]) -> None:
        service = await service_factory()

        star = await service.search("*")
        blank = await service.search("   ")

        assert star.total == 4
        assert blank.total == 4


class TestFilters:
    """Tests for attribute filters."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("filters", "expected"),
        [
            (SearchFilters(categories=["BREAD"]), {"BREAD1"}),
            (SearchFilters(categories=["DAIRY", "WINE"]), {"MILK", "WINE1"}),
            (SearchFilters(brands=["Milk"]), {"CHOC1"}),
            (SearchFilters(sf_preferred=True), {"CHOC1", "BREAD1"}),
            (SearchFilters(sf_preferred=False), {"MILK", "WINE1"}),
            (SearchFilters(availability=["Not Available"]), {"WINE1"}),
            (SearchFilters(account_sets=["A2"]), {"WINE1"}),
            (SearchFilters(warehouses=["SOUTH"]), {"MILK", "BREAD1"}),
            (SearchFilters(warehouses=["NOWHERE"]), set()),
            (SearchFilters(price_range=PriceRange(min=2, max=5)), {"MILK", "BREAD1"}),
            (SearchFilters(sf_preferred=True, categories=["BAKERY"]), {"BREAD1"}),
            (SearchFilters(categories=[]), {"MILK", "CHOC1", "WINE1", "BREAD1"}),
        ],
    )
    async def test_filter(
        self,
        service_factory: Callable[..., Any],
        filters: SearchFilters,
        expected: set[str],
    ) -> None:
        service = await service_factory()

        result = await service.search("", filters, limit=50)

        assert set(skus(result.products)) == expected
        assert result.total == len(expected)

    @pytest.mark.asyncio
    async def test_allergen_filter_keeps_products_containing_allergen(
        self,
        product_factory: Callable[..., Product],
        service_factory: Callable[..., Any],
    ) -> None:
        """Allergen filter selects products that contain any listed allergen."""
        service = await service_factory(
            [
                product_factory(sku="C", allergens=["nuts", "dairy"]),
                product_factory(sku="D", allergens=["dairy"]),
                product_factory(sku="E"),
            ]
        )

        result = await service.search("", SearchFilters(allergens=["nuts"]))

        assert skus(result.products) == ["C"]


class TestSorting:
    """Tests for sort strategies."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("sort_by", "expected"),
        [
            ("name_asc", ["CHOC1", "WINE1", "BREAD1", "MILK"]),
            ("name_desc", ["MILK", "BREAD1", "WINE1", "CHOC1"]),
            ("price_asc", ["CHOC1", "MILK", "BREAD1", "WINE1"]),
            ("price_desc", ["WINE1", "BREAD1", "MILK", "CHOC1"]),
            ("availability", ["CHOC1", "MILK", "WINE1", "BREAD1"]),
            ("recently_purchased", ["CHOC1", "BREAD1", "MILK", "WINE1"]),
            ("discount_desc", ["WINE1", "MILK", "BREAD1", "CHOC1"]),
            ("relevance", ["CHOC1", "BREAD1", "WINE1", "MILK"]),
            ("no_such_sort", ["CHOC1", "BREAD1", "WINE1", "MILK"]),
        ],
    )
    async def test_sort_without_query(
        self,
        service_factory: Callable[..., Any],
        sort_by: str,
        expected: list[str],
    ) -> None:
        service = await service_factory()

        result = await service.search("", sort_by=sort_by)

        assert skus(result.products) == expected

    @pytest.mark.asyncio
    async def test_text_match_desc(self, service_factory: Callable[..., Any]) -> None:
        """SKU match (110) outranks name prefix plus brand (105)."""
        service = await service_factory()

        result = await service.search("milk", sort_by=SortOption.TEXT_MATCH_DESC)

        assert skus(result.products) == ["MILK", "CHOC1"]
        assert SearchService.text_match_score(result.products[0], "milk") == 110
        assert SearchService.text_match_score(result.products[1], "milk") == 105

    @pytest.mark.asyncio
    async def test_rating_sorts_break_ties_by_review_count(
        self,
        product_factory: Callable[..., Product],
        service_factory: Callable[..., Any],
    ) -> None:
        service = await service_factory(
            [
                product_factory(sku="R1", rating=4.5, review_count=10),
                product_factory(sku="R2", rating=DetailedRating(average_rating=4.5, rating_count=50)),
                product_factory(sku="R3"),
                product_factory(sku="R4", rating=3.0, review_count=5),
            ]
        )

        desc = await service.search("", sort_by="rating_desc")
        asc = await service.search("", sort_by="rating_asc")

        assert skus(desc.products) == ["R2", "R1", "R4", "R3"]
        assert skus(asc.products) == ["R3", "R4", "R2", "R1"]

    @pytest.mark.asyncio
    async def test_relevance_short_query_prefers_name_prefix(self, service_factory: Callable[..., Any]) -> None:
        service = await service_factory()

        result = await service.search("mil")

        assert skus(result.products) == ["CHOC1", "MILK"]

    @pytest.mark.asyncio
    async def test_ordering_is_deterministic(
        self,
        product_factory: Callable[..., Product],
        service_factory: Callable[..., Any],
    ) -> None:
        """Identical inputs give identical order, even with full ties."""
        products = [product_factory(sku=f"T{i}", display_name="Same Name") for i in (3, 1, 2)]
        service = await service_factory(products)

        first = await service.search("same", sort_by="name_asc")
        second = await service.search("same", sort_by="name_asc")

        assert skus(first.products) == skus(second.products) == ["T1", "T2", "T3"]


class TestPagination:
    """Tests for offset/limit handling."""

    @pytest.mark.asyncio
    async def test_slices_after_sorting(self, service_factory: Callable[..., Any]) -> None:
        service = await service_factory()

        result = await service.search("", offset=1, limit=2)

        assert skus(result.products) == ["BREAD1", "WINE1"]
        assert result.total == 4

    @pytest.mark.asyncio
    async def test_offset_past_end_is_empty(self, service_factory: Callable[..., Any]) -> None:
        service = await service_factory()

        result = await service.search("", offset=10, limit=5)

        assert result.products == []
        assert result.total == 4

    @pytest.mark.asyncio
    async def test_invalid_paging_uses_defaults(self, service_factory: Callable[..., Any]) -> None:
        service = await service_factory()

        result = await service.search("", offset=-3, limit=0)

        assert len(result.products) == 4
        assert result.total == 4

    @pytest.mark.asyncio
    async def test_facets_cover_whole_filtered_set(self, service_factory: Callable[..., Any]) -> None:
        service = await service_factory()

        result = await service.search("", limit=1)

        assert len(result.products) == 1
        assert sum(f.count for f in result.facets.brands) == 4


class TestDegradedSearch:
    """Search keeps answering when things go wrong."""

    @pytest.mark.asyncio
    async def test_failed_load_returns_empty_result(self, settings: Settings) -> None:
        loader = MagicMock()

        async def _fail() -> CatalogData:
            raise CatalogLoadError("missing file")

        loader.load = _fail
        service = SearchService(CatalogStore(loader), settings)

        result = await service.search("milk")

        assert result.products == []
        assert result.total == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_empty_result(
        self,
        settings: Settings,
        catalog_store_factory: Callable[..., Any],
        grocery_products: list[Product],
    ) -> None:
        store = await catalog_store_factory(grocery_products)
        facet_service = MagicMock()
        facet_service.compute.side_effect = RuntimeError("boom")
        service = SearchService(store, settings, facet_service=facet_service)

        result = await service.search("milk")

        assert result.total == 0
        assert result.products == []


class TestSuggest:
    """Tests for SearchService.suggest()."""

    @pytest.mark.asyncio
    async def test_suggests_names_and_brands(self, service_factory: Callable[..., Any]) -> None:
        service = await service_factory()

        suggestions = await service.suggest("mil")

        assert suggestions == ["Milk Chocolate Bar", "Milk"]

    @pytest.mark.asyncio
    async def test_blank_query_has_no_suggestions(self, service_factory: Callable[..., Any]) -> None:
        service = await service_factory()

        assert await service.suggest("  ") == []

    @pytest.mark.asyncio
    async def test_respects_limit(self, service_factory: Callable[..., Any]) -> None:
        service = await service_factory()

        assert await service.suggest("mil", limit=1) == ["Milk Chocolate Bar"]
