"""Fixed-length vector type."""

from __future__ import annotations

from typing import IO, Any, ClassVar, Generic, Sequence, Type, TypeVar, cast

from pydantic import BaseModel, Field, field_serializer, field_validator
from typing_extensions import Self

from .byte_arrays import BaseBytes
from .exceptions import CodecTypeError, CodecValueError
from .fixed_base import FixedModel, FixedType

T = TypeVar("T", bound=FixedType)
"""Element type of a vector. Must itself have a fixed layout."""


class Vector(FixedModel, Generic[T]):
    """
    Fixed-length, immutable sequence of fixed-size elements.

    Elements are encoded back to back with no length prefix, so the length
    lives at the type level.

    Subclasses must define:
        ELEMENT_TYPE: The type of each element
        LENGTH: The exact number of elements

    Example:
        class TileRow(Vector[Uint8]):
            ELEMENT_TYPE = Uint8
            LENGTH = 16
    """

    ELEMENT_TYPE: ClassVar[Type[FixedType]]
    """The type of elements in this vector."""

    LENGTH: ClassVar[int]
    """The exact number of elements."""

    data: Sequence[T] = Field(default_factory=tuple)
    """The immutable sequence of elements, stored as a tuple."""

    @field_serializer("data", when_used="json")
    def _serialize_data(self, value: Sequence[T]) -> list[Any]:
        """Serialize vector elements to JSON."""
        result: list[Any] = []
        for item in value:
            if isinstance(item, BaseBytes):
                result.append(item.to_text())
            elif isinstance(item, Vector):
                result.append(item.model_dump(mode="json")["data"])
            else:
                result.append(item)
        return result

    @field_validator("data", mode="before")
    @classmethod
    def _validate_vector_data(cls, v: Any) -> tuple[FixedType, ...]:
        """Validate and convert input to a typed tuple of exactly LENGTH elements."""
        if not hasattr(cls, "ELEMENT_TYPE") or not hasattr(cls, "LENGTH"):
            raise CodecTypeError(f"{cls.__name__} must define ELEMENT_TYPE and LENGTH")

        if not isinstance(v, (list, tuple)):
            v = tuple(v)

        element_type = cast(Any, cls.ELEMENT_TYPE)
        wraps_model = issubclass(cls.ELEMENT_TYPE, BaseModel)
        typed_values = tuple(
            item
            if isinstance(item, cls.ELEMENT_TYPE)
            else (element_type(data=item) if wraps_model else element_type(item))
            for item in v
        )

        if len(typed_values) != cls.LENGTH:
            raise CodecValueError(
                f"{cls.__name__} requires exactly {cls.LENGTH} elements, got {len(typed_values)}"
            )
        return typed_values

    @classmethod
    def filled(cls, value: Any) -> Self:
        """Create a vector with every element set to `value`."""
        return cls(data=[value] * cls.LENGTH)

    @classmethod
    def get_byte_length(cls) -> int:
        """Element length times element count."""
        return cls.ELEMENT_TYPE.get_byte_length() * cls.LENGTH

    def serialize(self, stream: IO[bytes]) -> int:
        """Write each element in order."""
        return sum(element.serialize(stream) for element in self.data)

    @classmethod
    def deserialize(cls, stream: IO[bytes]) -> Self:
        """Read exactly LENGTH elements."""
        return cls(data=[cls.ELEMENT_TYPE.deserialize(stream) for _ in range(cls.LENGTH)])

    def replace_at(self, index: int, value: Any) -> Self:
        """Return a copy with one element replaced."""
        items = list(self.data)
        items[index] = value
        return type(self)(data=items)
