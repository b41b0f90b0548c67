"""Little-endian integer types."""

from __future__ import annotations

from typing import IO, Any, ClassVar

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import core_schema
from typing_extensions import Self

from .fixed_base import FixedType, read_exact


class BaseInteger(int, FixedType):
    """
    A base class for fixed-width integers that inherits from `int`.

    Subclasses set `BITS` and `SIGNED`. Values are range checked on
    construction and always encoded little-endian.
    """

    BITS: ClassVar[int]
    """The number of bits in the integer (overridden by subclasses)."""

    SIGNED: ClassVar[bool] = False
    """Whether the integer is two's-complement signed."""

    def __new__(cls, value: int) -> Self:
        """
        Create and validate a new integer instance.

        Raises:
            TypeError: If `value` is not an int, or is a bool.
            OverflowError: If `value` does not fit in `BITS` bits.
        """
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"Expected int, got {type(value).__name__}")
        int_value = int(value)
        if not (cls.min_value() <= int_value <= cls.max_value()):
            raise OverflowError(f"{int_value} is out of range for {cls.__name__}")
        return super().__new__(cls, int_value)

    @classmethod
    def min_value(cls) -> int:
        """Smallest representable value."""
        return -(2 ** (cls.BITS - 1)) if cls.SIGNED else 0

    @classmethod
    def max_value(cls) -> int:
        """Largest representable value."""
        return 2 ** (cls.BITS - 1) - 1 if cls.SIGNED else 2**cls.BITS - 1

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        """Hook into Pydantic's validation system."""

        def validate(value: Any) -> BaseInteger:
            """Pydantic validation function that calls the class constructor."""
            if isinstance(value, bool):
                raise ValueError(f"{cls.__name__} does not accept booleans")
            try:
                return cls(value)
            except (OverflowError, TypeError) as e:
                raise ValueError(str(e)) from e

        return core_schema.json_or_python_schema(
            json_schema=core_schema.int_schema(ge=cls.min_value(), le=cls.max_value()),
            python_schema=core_schema.no_info_plain_validator_function(validate),
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda instance: int(instance)
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, core_schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> JsonSchemaValue:
        """Hook into Pydantic's JSON Schema generation system."""
        json_schema = handler(core_schema)
        prefix = "int" if cls.SIGNED else "uint"
        json_schema.update(format=f"{prefix}{cls.BITS}")
        return json_schema

    @classmethod
    def get_byte_length(cls) -> int:
        """Get the byte length of the integer."""
        return cls.BITS // 8

    def serialize(self, stream: IO[bytes]) -> int:
        """Write the little-endian encoding to the stream."""
        data = int(self).to_bytes(self.get_byte_length(), "little", signed=self.SIGNED)
        stream.write(data)
        return len(data)

    @classmethod
    def deserialize(cls, stream: IO[bytes]) -> Self:
        """Read a little-endian value from the stream."""
        data = read_exact(stream, cls.get_byte_length(), cls.__name__)
        return cls(int.from_bytes(data, "little", signed=cls.SIGNED))

    def __repr__(self) -> str:
        """Return the type name and integer value."""
        return f"{type(self).__name__}({int(self)})"


class Uint8(BaseInteger):
    """Unsigned 8-bit integer."""

    BITS = 8


class Uint32(BaseInteger):
    """Unsigned 32-bit integer."""

    BITS = 32


class Uint64(BaseInteger):
    """Unsigned 64-bit integer."""

    BITS = 64


class Int64(BaseInteger):
    """Signed 64-bit integer. Used for unix timestamps."""

    BITS = 64
    SIGNED = True
