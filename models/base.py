"""Shared pydantic configuration for API-facing models."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base model accepting both snake_case and camelCase keys.

    Dump with ``by_alias=True`` for the HTTP surface and without it for the
    store, whose columns are snake_case.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )
