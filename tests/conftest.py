"""Pytest configuration and fixtures for the catalog engine test suite.

Provides:
- Product and stock record factories
- An in-memory catalog store factory (already initialized)
- Settings and recommendation config with a synthetic complementarity table
"""

from collections.abc import Callable, Iterable
from typing import Any

import pytest

from catalog_engine.core.config import Settings
from catalog_engine.schemas.product import Product, StockRecord
from catalog_engine.schemas.recommendation import RecommendationConfig
from catalog_engine.services.catalog_loader import InMemoryCatalogLoader
from catalog_engine.services.catalog_store import CatalogStore

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the environment."""
    return Settings(_env_file=None)


@pytest.fixture
def recommendation_config() -> RecommendationConfig:
    """Default weights with a small synthetic complementarity table."""
    return RecommendationConfig(complementary_categories={"DAIRY": ["BAKERY"], "BAKERY": ["DAIRY"]})


# ---------------------------------------------------------------------------
# Entity factories
# ---------------------------------------------------------------------------


@pytest.fixture
def product_factory() -> Callable[..., Product]:
    """Factory that creates Product instances with sensible defaults."""

    def _create(
        *,
        sku: str = "SKU-1",
        display_name: str = "Test Product",
        description: str = "",
        brand: str = "",
        category: str = "",
        web_category: str = "",
        web_sub_category: str = "",
        price: float | None = None,
        is_sf_preferred: bool = False,
        is_active: bool = True,
        is_deleted: bool = False,
        availability: str = "",
        keywords: list[str] | None = None,
        allergens: list[str] | None = None,
        **extra: Any,
    ) -> Product:
        return Product(
            sku=sku,
            display_name=display_name,
            description=description,
            brand=brand,
            category=category,
            web_category=web_category,
            web_sub_category=web_sub_category,
            price=price,
            is_sf_preferred=is_sf_preferred,
            is_active=is_active,
            is_deleted=is_deleted,
            availability=availability,
            keywords=keywords or [],
            allergens=allergens or [],
            **extra,
        )

    return _create


@pytest.fixture
def stock_factory() -> Callable[..., StockRecord]:
    """Factory that creates StockRecord instances."""

    def _create(
        *,
        product_code: str,
        warehouse: str = "MAIN",
        available_quantity: float = 1,
        is_active: bool = True,
    ) -> StockRecord:
        return StockRecord(
            product_code=product_code,
            warehouse=warehouse,
            available_quantity=available_quantity,
            is_active=is_active,
        )

    return _create


@pytest.fixture
def catalog_store_factory() -> Callable[..., Any]:
    """Factory that creates an initialized CatalogStore over in-memory records."""

    async def _create(
        products: Iterable[Product],
        stock: Iterable[StockRecord] = (),
    ) -> CatalogStore:
        store = CatalogStore(InMemoryCatalogLoader(products, stock))
        await store.initialize()
        return store

    return _create
