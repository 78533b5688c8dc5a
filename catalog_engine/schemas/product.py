"""Pydantic schemas for catalog products and warehouse stock."""

from functools import cached_property
from typing import NamedTuple

from pydantic import AliasChoices, Field, field_validator, model_validator

from catalog_engine.schemas.common import FrozenSchema

# Sort rank for the availability strategy. Keys are normalized with
# _normalize_availability(); anything else ranks as unknown (0).
AVAILABILITY_RANKS = {
    "in_stock": 3,
    "available": 3,
    "low_stock": 2,
    "out_of_stock": 1,
    "not_available": 1,
    "notavailable": 1,
}


def _normalize_availability(value: str) -> str:
    return value.strip().lower().replace("-", "_").replace(" ", "_")


def availability_rank(value: str | None) -> int:
    """Rank an availability state: in-stock 3, low-stock 2, out-of-stock 1, unknown 0."""
    if not value:
        return 0
    return AVAILABILITY_RANKS.get(_normalize_availability(value), 0)


class DetailedRating(FrozenSchema):
    """Structured rating as delivered by review feeds."""

    average_rating: float | None = Field(None, ge=0, le=5)
    rating_count: int | None = Field(None, ge=0)
    rating_histogram: tuple[int, ...] = ()


class RatingSummary(NamedTuple):
    average: float
    count: int


class Product(FrozenSchema):
    """One catalog entry. Immutable once loaded."""

    sku: str = ""
    display_name: str = ""
    description: str = ""
    brand: str = ""
    category: str = ""
    web_category: str = ""
    web_sub_category: str = ""
    category_description: str = Field(
        "", validation_alias=AliasChoices("categoryDescription", "categoryDesc", "category_description")
    )
    web_desc: str = ""
    web_sub_desc: str = ""
    units: str = ""
    vendor: str = ""
    vendor_name: str = ""
    image_url: str = Field("", validation_alias=AliasChoices("imageUrl", "imageURL", "image_url"))
    url_slug: str = ""

    price: float | None = Field(None, ge=0)
    discounted_price: float | None = Field(None, ge=0)
    rating: float | DetailedRating | None = None
    review_count: int | None = Field(None, ge=0)
    order_last_month: int | None = Field(None, ge=0)

    is_sf_preferred: bool = Field(False, alias="isSFPreferred")
    is_active: bool = True
    is_deleted: bool = False
    availability: str = ""
    account_set: str = Field("", validation_alias=AliasChoices("accountSet", "accset", "account_set"))

    keywords: tuple[str, ...] = ()
    allergens: tuple[str, ...] = ()

    @field_validator("allergens")
    @classmethod
    def _dedupe_allergens(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(dict.fromkeys(a for a in value if a))

    @field_validator("rating")
    @classmethod
    def _check_scalar_rating(cls, value: float | DetailedRating | None) -> float | DetailedRating | None:
        if isinstance(value, float) and not 0.0 <= value <= 5.0:
            raise ValueError("rating must be between 0 and 5")
        return value

    @model_validator(mode="after")
    def _check_discount(self) -> "Product":
        if self.discounted_price is not None and self.price is not None and self.discounted_price > self.price:
            raise ValueError("discountedPrice must not exceed price")
        return self

    @property
    def is_searchable(self) -> bool:
        """Only active, non-deleted products with a SKU are ever served."""
        return self.is_active and not self.is_deleted and bool(self.sku)

    @cached_property
    def searchable_text(self) -> str:
        """Lower-cased concatenation of every field free-text search looks at."""
        parts = [
            self.display_name,
            self.description,
            self.brand,
            self.category,
            self.web_category,
            self.web_sub_category,
            self.sku,
            self.web_desc,
            self.web_sub_desc,
            *self.keywords,
        ]
        return " ".join(p for p in parts if p).lower()

    @cached_property
    def searchable_words(self) -> tuple[str, ...]:
        return tuple(self.searchable_text.split())

    @property
    def discount_ratio(self) -> float:
        """Fractional discount off list price, 0 when there is none."""
        if not self.price or self.discounted_price is None:
            return 0.0
        return (self.price - self.discounted_price) / self.price


def effective_rating(product: Product) -> RatingSummary:
    """Resolve the rating variant (absent, scalar or detailed) to average and count.

    An explicit review_count wins over the count carried by a detailed rating.
    """
    rating = product.rating
    if isinstance(rating, DetailedRating):
        average = rating.average_rating or 0.0
        detailed_count = rating.rating_count or 0
    else:
        average = float(rating) if rating is not None else 0.0
        detailed_count = 0
    count = product.review_count or detailed_count
    return RatingSummary(average=average, count=count)


class StockRecord(FrozenSchema):
    """Warehouse-level stock row joined to a product by product_code == sku."""

    product_code: str
    product_name: str = ""
    available_quantity: float = Field(0, ge=0)
    warehouse: str = ""
    status: str = ""
    average_cost: float = 0
    last_cost: float = 0
    standard_cost: float = 0
    cost_unit: str = ""
    is_active: bool = True


class StockSummary(FrozenSchema):
    """Derived stock aggregates for one product."""

    sku: str
    available_quantity: float = 0
    total_stock: float = 0
    warehouse_count: int = 0
