"""
Record type: an ordered struct of fixed-size named fields.

Account data on the ledger is laid out as the fields of a struct written back
to back in declaration order, little-endian, with no padding and no offsets.
"""

from __future__ import annotations

from typing import IO, Type, cast

from typing_extensions import Self

from .exceptions import CodecTypeError
from .fixed_base import FixedModel, FixedType


class Record(FixedModel):
    """
    A strict, ordered collection of fixed-size named fields.

    Example:
        >>> class Position(Record):
        ...     x: Uint8
        ...     y: Uint8

    Serialization format:
        [field_1][field_2]...[field_n]
    """

    @classmethod
    def _field_types(cls) -> list[tuple[str, Type[FixedType]]]:
        """Return (name, type) pairs in declaration order."""
        pairs = []
        for name, info in cls.model_fields.items():
            annotation = info.annotation
            if not (isinstance(annotation, type) and issubclass(annotation, FixedType)):
                raise CodecTypeError(f"{cls.__name__}.{name} is not a fixed-layout type")
            pairs.append((name, cast(Type[FixedType], annotation)))
        return pairs

    @classmethod
    def get_byte_length(cls) -> int:
        """Sum of all field lengths."""
        return sum(field_type.get_byte_length() for _, field_type in cls._field_types())

    def serialize(self, stream: IO[bytes]) -> int:
        """Write every field in declaration order."""
        return sum(getattr(self, name).serialize(stream) for name, _ in self._field_types())

    @classmethod
    def deserialize(cls, stream: IO[bytes]) -> Self:
        """Read every field in declaration order."""
        fields = {name: field_type.deserialize(stream) for name, field_type in cls._field_types()}
        return cls(**fields)
