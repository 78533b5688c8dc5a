"""Shape of the user events callers forward to the external search service.

The engine does not consume these events; it only validates them.
"""

import enum
from datetime import datetime

from pydantic import Field

from catalog_engine.schemas.common import BaseSchema


class UserEventType(str, enum.Enum):
    SEARCH = "search"
    DETAIL_PAGE_VIEW = "detail-page-view"
    ADD_TO_CART = "add-to-cart"
    PURCHASE_COMPLETE = "purchase-complete"
    HOME_PAGE_VIEW = "home-page-view"
    SHOPPING_CART_PAGE_VIEW = "shopping-cart-page-view"


class ProductDetail(BaseSchema):
    sku: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)


class UserEvent(BaseSchema):
    """A search, view or cart event reported after a successful call."""

    event_type: UserEventType
    visitor_id: str = Field(..., min_length=1)
    event_time: datetime
    user_id: str | None = None
    search_query: str | None = None
    product_details: list[ProductDetail] = []
