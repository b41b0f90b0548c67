"""Fixed-length byte array types."""

from __future__ import annotations

from typing import IO, Any, ClassVar, Iterable, SupportsIndex

from pydantic.annotated_handlers import GetCoreSchemaHandler
from pydantic_core import core_schema
from typing_extensions import Self

from .fixed_base import FixedType, read_exact


def _coerce_to_bytes(value: Any) -> bytes:
    """
    Coerce a variety of inputs to raw bytes.

    Accepts:
      - `bytes` / `bytearray`
      - Iterables of integers in [0, 255]
      - Hex strings, with or without a '0x' prefix
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return bytes.fromhex(value.removeprefix("0x"))
    if isinstance(value, Iterable):
        return bytes(bytearray(value))
    return bytes(value)


class BaseBytes(bytes, FixedType):
    """
    A base class for fixed-length byte types that inherits from `bytes`.

    Subclasses set `LENGTH`, the exact number of bytes an instance holds.
    """

    LENGTH: ClassVar[int]
    """The exact number of bytes (overridden by subclasses)."""

    def __new__(cls, value: Any = b"") -> Self:
        """
        Create and validate a new instance.

        Raises:
            ValueError: If the resulting byte length differs from `LENGTH`.
        """
        if not hasattr(cls, "LENGTH"):
            raise TypeError(f"{cls.__name__} must define LENGTH")

        b = _coerce_to_bytes(value)
        if len(b) != cls.LENGTH:
            raise ValueError(f"{cls.__name__} expects exactly {cls.LENGTH} bytes, got {len(b)}")
        return super().__new__(cls, b)

    @classmethod
    def zero(cls) -> Self:
        """Create an instance filled with zero bytes."""
        return cls(b"\x00" * cls.LENGTH)

    @classmethod
    def get_byte_length(cls) -> int:
        """Get the byte length of this type."""
        return cls.LENGTH

    def serialize(self, stream: IO[bytes]) -> int:
        """Write the raw bytes to `stream`."""
        stream.write(self)
        return len(self)

    @classmethod
    def deserialize(cls, stream: IO[bytes]) -> Self:
        """Read exactly `LENGTH` bytes from `stream`."""
        return cls(read_exact(stream, cls.LENGTH, cls.__name__))

    def to_text(self) -> str:
        """Text form used for JSON serialization. Hex unless overridden."""
        return self.hex()

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """
        Hook into Pydantic's validation system.

        Accepts existing instances as-is and coerces raw bytes of the right
        length. Serializes to the type's text form.
        """
        from_bytes_validator = core_schema.no_info_plain_validator_function(cls)

        python_schema = core_schema.chain_schema(
            [
                core_schema.bytes_schema(min_length=cls.LENGTH, max_length=cls.LENGTH),
                from_bytes_validator,
            ]
        )

        return core_schema.union_schema(
            [
                core_schema.is_instance_schema(cls),
                python_schema,
            ],
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda x: x.to_text()
            ),
        )

    def __repr__(self) -> str:
        """Return a string representation of the bytes."""
        return f"{type(self).__name__}({self.to_text()})"

    def __hash__(self) -> int:
        """Return the hash of the bytes."""
        return hash((type(self), bytes(self)))

    def hex(self, sep: str | bytes | None = None, bytes_per_sep: SupportsIndex = 1) -> str:
        """Return the hexadecimal string representation of the underlying bytes."""
        return bytes(self).hex() if sep is None else bytes(self).hex(sep, bytes_per_sep)


class Bytes8(BaseBytes):
    """Fixed-size byte array of exactly 8 bytes. Discriminators."""

    LENGTH = 8


class Bytes32(BaseBytes):
    """Fixed-size byte array of exactly 32 bytes."""

    LENGTH = 32


class Bytes64(BaseBytes):
    """Fixed-size byte array of exactly 64 bytes. Ed25519 signatures."""

    LENGTH = 64
