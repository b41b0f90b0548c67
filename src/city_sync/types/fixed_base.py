"""Base classes and interfaces for all fixed-layout types."""

from __future__ import annotations

import io
from abc import ABC, abstractmethod
from typing import IO, Any

from typing_extensions import Iterator, Self

from .base import StrictBaseModel
from .exceptions import CodecDecodeError


class FixedType(ABC):
    """
    Abstract base class for every type with a fixed byte layout.

    Account records on the ledger are plain concatenations of little-endian
    scalars and byte arrays, so every type knows its exact length up front.
    """

    @classmethod
    @abstractmethod
    def get_byte_length(cls) -> int:
        """Return the exact number of bytes one value occupies."""
        ...

    @abstractmethod
    def serialize(self, stream: IO[bytes]) -> int:
        """
        Write the value to a binary stream.

        Returns:
            The number of bytes written.
        """
        ...

    @classmethod
    @abstractmethod
    def deserialize(cls, stream: IO[bytes]) -> Self:
        """
        Read exactly `get_byte_length()` bytes from the stream.

        Raises:
            CodecDecodeError: If the stream ends early.
        """
        ...

    def encode_bytes(self) -> bytes:
        """Serialize the value to a byte string."""
        with io.BytesIO() as stream:
            self.serialize(stream)
            return stream.getvalue()

    @classmethod
    def decode_bytes(cls, data: bytes) -> Self:
        """
        Decode a byte string that holds exactly one value.

        Trailing or missing bytes are rejected, never ignored.
        """
        size = cls.get_byte_length()
        if len(data) != size:
            raise CodecDecodeError(cls.__name__, expected=size, actual=len(data))
        with io.BytesIO(data) as stream:
            return cls.deserialize(stream)


def read_exact(stream: IO[bytes], size: int, type_name: str) -> bytes:
    """Read `size` bytes or raise a decode error naming the type."""
    data = stream.read(size)
    if len(data) != size:
        raise CodecDecodeError(type_name, expected=size, actual=len(data))
    return data


class FixedModel(StrictBaseModel, FixedType):
    """
    Base class for composite fixed-layout types backed by pydantic.

    Collections with a `data` field get natural iteration and indexing.
    """

    def __len__(self) -> int:
        """Return the number of elements or fields."""
        if hasattr(self, "data"):
            return len(self.data)
        return len(type(self).model_fields)

    def __iter__(self) -> Iterator[Any]:  # type: ignore[override]
        """Iterate over collection elements."""
        if hasattr(self, "data"):
            return iter(self.data)
        return iter((name, getattr(self, name)) for name in type(self).model_fields)

    def __getitem__(self, key: Any) -> Any:
        """Index into the collection data."""
        if hasattr(self, "data"):
            return self.data[key]
        if isinstance(key, str) and key in type(self).model_fields:
            return getattr(self, key)
        raise KeyError(f"Invalid key '{key}' for {self.__class__.__name__}")
