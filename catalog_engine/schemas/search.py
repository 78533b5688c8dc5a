"""Pydantic schemas for product search, filtering and facets."""

import enum

from pydantic import AliasChoices, Field

from catalog_engine.schemas.common import BaseSchema
from catalog_engine.schemas.product import Product


class SortOption(str, enum.Enum):
    """Supported result orderings."""

    RELEVANCE = "relevance"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    AVAILABILITY = "availability"
    TEXT_MATCH_DESC = "text_match_desc"
    RECENTLY_PURCHASED = "recently_purchased"
    RATING_DESC = "rating_desc"
    RATING_ASC = "rating_asc"
    DISCOUNT_DESC = "discount_desc"
    DISCOUNT_ASC = "discount_asc"

    @classmethod
    def parse(cls, value: "str | SortOption | None") -> "SortOption":
        """Resolve a sort name, falling back to relevance for unknown values."""
        if isinstance(value, SortOption):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.RELEVANCE


class PriceRange(BaseSchema):
    """Inclusive price bounds; either side may be open."""

    min: float | None = None
    max: float | None = None

    def contains(self, price: float | None) -> bool:
        if self.min is None and self.max is None:
            return True
        if price is None:
            return False
        if self.min is not None and price < self.min:
            return False
        if self.max is not None and price > self.max:
            return False
        return True


class SearchFilters(BaseSchema):
    """Filters that can be applied to product search.

    Each list filter matches any of its values; filters combine with AND.
    """

    categories: list[str] | None = Field(None, description="Match category or web category")
    brands: list[str] | None = Field(None, validation_alias=AliasChoices("brands", "brand"))
    account_sets: list[str] | None = Field(
        None, validation_alias=AliasChoices("accountSets", "accset", "account_sets")
    )
    allergens: list[str] | None = Field(None, description="Products containing any of these allergens")
    availability: list[str] | None = None
    warehouses: list[str] | None = Field(None, validation_alias=AliasChoices("warehouses", "warehouse"))
    sf_preferred: bool | None = Field(None, alias="sfPreferred")
    price_range: PriceRange | None = None


class FacetValue(BaseSchema):
    value: str
    count: int


class PriceRangeFacet(BaseSchema):
    min: float
    max: float | None = None
    count: int = 0


class SearchFacets(BaseSchema):
    """Value/count breakdowns over the filtered result set."""

    categories: list[FacetValue] = []
    brands: list[FacetValue] = []
    account_sets: list[FacetValue] = []
    availability: list[FacetValue] = []
    allergens: list[FacetValue] = []
    warehouses: list[FacetValue] = []
    price_ranges: list[PriceRangeFacet] = []


class SearchResult(BaseSchema):
    """Response from product search."""

    products: list[Product]
    facets: SearchFacets = Field(default_factory=SearchFacets)
    total: int = 0
    query_time_ms: float = 0.0
