"""Common Pydantic schemas used across the engine."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema with common configuration.

    Fields are snake_case in Python and camelCase on the wire, matching the
    flat records handed over by the catalog loader.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        from_attributes=True,
        populate_by_name=True,
    )


class FrozenSchema(BaseSchema):
    """Immutable schema for catalog entities."""

    model_config = ConfigDict(frozen=True)
