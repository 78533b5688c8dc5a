"""Normalize flat catalog records into validated products and stock rows."""

import asyncio
import json
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from catalog_engine.core.exceptions import CatalogLoadError
from catalog_engine.schemas.product import Product, StockRecord

logger = logging.getLogger(__name__)

# Free-text tag columns arrive as "a, b; c"
TAG_SEPARATORS = re.compile(r"[,;]")


@dataclass(frozen=True)
class CatalogData:
    """One load generation's worth of normalized entities."""

    products: list[Product] = field(default_factory=list)
    stock: list[StockRecord] = field(default_factory=list)


class CatalogLoader(Protocol):
    """Anything that can produce a normalized catalog."""

    async def load(self) -> CatalogData: ...


def split_tags(value: Any) -> list[str]:
    """Split a delimited tag string (or pass through a list), dropping blanks."""
    if value is None:
        return []
    if isinstance(value, str):
        parts: Iterable[Any] = TAG_SEPARATORS.split(value)
    else:
        parts = value
    return [str(p).strip() for p in parts if str(p).strip()]


def normalize_records(
    product_records: Iterable[Mapping[str, Any]],
    stock_records: Iterable[Mapping[str, Any]] = (),
) -> CatalogData:
    """Validate raw records, keeping only searchable products.

    Invalid records are logged and skipped; a duplicate SKU keeps its first
    occurrence.

    Args:
        product_records: Flat product records (camelCase field names)
        stock_records: Flat warehouse stock records

    Returns:
        CatalogData with products in input order
    """
    products: list[Product] = []
    seen: set[str] = set()
    skipped = 0

    for index, record in enumerate(product_records):
        data = dict(record)
        for tag_field in ("keywords", "allergens"):
            if tag_field in data:
                data[tag_field] = split_tags(data[tag_field])
        try:
            product = Product.model_validate(data)
        except ValidationError as exc:
            logger.warning("Skipping invalid product record %d: %s", index, exc.errors()[:1])
            skipped += 1
            continue

        if not product.is_searchable:
            continue
        if product.sku in seen:
            logger.warning("Skipping duplicate SKU %s at record %d", product.sku, index)
            skipped += 1
            continue
        seen.add(product.sku)
        products.append(product)

    stock: list[StockRecord] = []
    for index, record in enumerate(stock_records):
        try:
            row = StockRecord.model_validate(dict(record))
        except ValidationError as exc:
            logger.warning("Skipping invalid stock record %d: %s", index, exc.errors()[:1])
            skipped += 1
            continue
        if row.product_code:
            stock.append(row)

    if skipped:
        logger.info("Catalog normalization skipped %d records", skipped)
    return CatalogData(products=products, stock=stock)


class InMemoryCatalogLoader:
    """Loader over records that are already in memory."""

    def __init__(
        self,
        products: Iterable[Mapping[str, Any] | Product],
        stock: Iterable[Mapping[str, Any] | StockRecord] = (),
    ) -> None:
        self.products = list(products)
        self.stock = list(stock)

    async def load(self) -> CatalogData:
        product_records = [p.model_dump(by_alias=True) if isinstance(p, Product) else p for p in self.products]
        stock_records = [s.model_dump(by_alias=True) if isinstance(s, StockRecord) else s for s in self.stock]
        return normalize_records(product_records, stock_records)


class JsonCatalogLoader:
    """Loader reading product and stock record arrays from JSON files."""

    def __init__(self, products_path: Path, stock_path: Path | None = None) -> None:
        self.products_path = Path(products_path)
        self.stock_path = Path(stock_path) if stock_path else None

    async def load(self) -> CatalogData:
        """Read both files off the event loop and normalize them."""
        return await asyncio.to_thread(self._load_sync)

    def _load_sync(self) -> CatalogData:
        product_records = self._read_records(self.products_path)
        stock_records: list[dict[str, Any]] = []
        if self.stock_path is not None:
            if self.stock_path.exists():
                stock_records = self._read_records(self.stock_path)
            else:
                logger.warning("Stock file not found: %s", self.stock_path)
        return normalize_records(product_records, stock_records)

    @staticmethod
    def _read_records(path: Path) -> list[dict[str, Any]]:
        try:
            with path.open(encoding="utf-8") as fh:
                payload = json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            raise CatalogLoadError(f"Cannot read catalog file: {exc}", source=str(path)) from exc

        if isinstance(payload, dict):
            # Accept {"items": [...]} envelopes as well as bare arrays
            payload = payload.get("items", payload.get("products"))
        if not isinstance(payload, list):
            raise CatalogLoadError("Catalog file must contain a list of records", source=str(path))
        return [r for r in payload if isinstance(r, dict)]
