"""Strict base models shared by every record in the client."""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    A base model whose field names serialize as camelCase.

    The on-chain program and its tooling speak camelCase (`lastUpdated`,
    `validUntil`), while the Python side keeps snake_case attributes.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
        arbitrary_types_allowed=True,
    )

    def replace(self: Self, **changes: Any) -> Self:
        """Return a validated copy with the given fields replaced."""
        values = {name: getattr(self, name) for name in type(self).model_fields}
        return self.__class__(**(values | changes))


class StrictBaseModel(CamelModel):
    """A strict, immutable pydantic base model."""

    model_config = CamelModel.model_config | {
        "extra": "forbid",
        "frozen": True,
        "strict": True,
    }
