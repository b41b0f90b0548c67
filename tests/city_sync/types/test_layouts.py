"""Tests for byte arrays, fixed-length vectors and records."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from city_sync.types import (
    Bytes8,
    Bytes32,
    CodecDecodeError,
    CodecTypeError,
    CodecValueError,
    Int64,
    Record,
    Uint8,
    Uint32,
    Vector,
)


class Triple(Vector[Uint8]):
    """Three bytes."""

    ELEMENT_TYPE = Uint8
    LENGTH = 3


class Pair(Vector[Triple]):
    """Two triples."""

    ELEMENT_TYPE = Triple
    LENGTH = 2


class Position(Record):
    """A small record."""

    x: Uint8
    y: Uint32
    last_seen: Int64


class Broken(Record):
    """A record with a field that has no fixed layout."""

    name: str


class TestBytes:
    """Fixed-length byte arrays."""

    def test_exact_length_required(self) -> None:
        """Any other length is rejected."""
        with pytest.raises(ValueError, match="exactly 8 bytes"):
            Bytes8(b"\x00" * 7)

    def test_accepts_hex_and_iterables(self) -> None:
        """Hex strings and integer iterables coerce to bytes."""
        assert Bytes8("0x0102030405060708") == Bytes8([1, 2, 3, 4, 5, 6, 7, 8])

    def test_zero(self) -> None:
        """zero() is all zero bytes."""
        assert bytes(Bytes32.zero()) == b"\x00" * 32

    def test_hash_distinguishes_types(self) -> None:
        """Equal bytes of different types hash apart."""
        assert hash(Bytes8(b"\x01" * 8)) != hash(b"\x01" * 8)


class TestVector:
    """Fixed-length vectors."""

    def test_wraps_plain_values(self) -> None:
        """Plain integers are wrapped in the element type."""
        triple = Triple(data=[1, 2, 3])
        assert all(isinstance(item, Uint8) for item in triple)
        assert len(triple) == 3

    def test_wraps_nested_vectors(self) -> None:
        """Nested plain lists become nested vectors."""
        pair = Pair(data=[[1, 2, 3], [4, 5, 6]])
        assert isinstance(pair[1], Triple)
        assert pair[1][2] == 6

    def test_wrong_length_rejected(self) -> None:
        """A vector must hold exactly LENGTH elements."""
        with pytest.raises((CodecValueError, ValidationError)):
            Triple(data=[1, 2])

    def test_encoding_is_concatenation(self) -> None:
        """Elements are written back to back with no length prefix."""
        pair = Pair(data=[[1, 2, 3], [4, 5, 6]])
        assert pair.encode_bytes() == bytes([1, 2, 3, 4, 5, 6])
        assert Pair.decode_bytes(bytes([1, 2, 3, 4, 5, 6])) == pair

    def test_replace_at_returns_copy(self) -> None:
        """replace_at leaves the original untouched."""
        triple = Triple.filled(0)
        updated = triple.replace_at(1, Uint8(9))
        assert list(triple) == [0, 0, 0]
        assert list(updated) == [0, 9, 0]

    def test_immutable(self) -> None:
        """Vectors are frozen."""
        triple = Triple.filled(0)
        with pytest.raises(ValidationError):
            triple.data = (Uint8(1), Uint8(1), Uint8(1))  # type: ignore[misc]

    def test_json_dump_nested(self) -> None:
        """JSON output is plain nested lists."""
        pair = Pair(data=[[1, 2, 3], [4, 5, 6]])
        assert pair.model_dump(mode="json") == {"data": [[1, 2, 3], [4, 5, 6]]}


class TestRecord:
    """Records of named fixed-size fields."""

    def test_byte_length_is_sum_of_fields(self) -> None:
        """1 + 4 + 8 bytes."""
        assert Position.get_byte_length() == 13

    def test_fields_encoded_in_declaration_order(self) -> None:
        """Fields are concatenated in order, little-endian."""
        position = Position(x=1, y=0x02030405, last_seen=-2)
        encoded = position.encode_bytes()
        assert encoded[:5] == b"\x01\x05\x04\x03\x02"
        assert Int64.decode_bytes(encoded[5:]) == -2
        assert Position.decode_bytes(encoded) == position

    def test_truncated_buffer_rejected(self) -> None:
        """A short buffer fails instead of producing a partial record."""
        with pytest.raises(CodecDecodeError):
            Position.decode_bytes(b"\x01\x02")

    def test_non_fixed_field_rejected(self) -> None:
        """Fields without a fixed layout cannot be encoded."""
        with pytest.raises(CodecTypeError, match="Broken.name"):
            Broken.get_byte_length()

    def test_unknown_fields_forbidden(self) -> None:
        """Records reject unexpected fields."""
        with pytest.raises(ValidationError):
            Position(x=1, y=2, last_seen=3, extra=4)  # type: ignore[call-arg]

    def test_camel_case_aliases(self) -> None:
        """Fields dump with camelCase aliases."""
        dumped = Position(x=1, y=2, last_seen=3).model_dump(by_alias=True)
        assert set(dumped) == {"x", "y", "lastSeen"}
