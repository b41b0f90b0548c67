"""Reusable fixed-layout type definitions."""

from .base import CamelModel, StrictBaseModel
from .byte_arrays import BaseBytes, Bytes8, Bytes32, Bytes64
from .collections import Vector
from .exceptions import CodecDecodeError, CodecError, CodecTypeError, CodecValueError
from .fixed_base import FixedModel, FixedType
from .record import Record
from .uint import BaseInteger, Int64, Uint8, Uint32, Uint64

__all__ = [
    # Models
    "CamelModel",
    "StrictBaseModel",
    "FixedModel",
    "FixedType",
    "Record",
    "Vector",
    # Scalars
    "BaseInteger",
    "Uint8",
    "Uint32",
    "Uint64",
    "Int64",
    # Byte arrays
    "BaseBytes",
    "Bytes8",
    "Bytes32",
    "Bytes64",
    # Exceptions
    "CodecError",
    "CodecTypeError",
    "CodecValueError",
    "CodecDecodeError",
]
