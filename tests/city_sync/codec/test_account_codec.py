"""Tests for account decoding and the city record."""

from __future__ import annotations

import pytest

from city_sync.codec import (
    CITY_DISCRIMINATOR,
    DISCRIMINATOR_LENGTH,
    GRID_SIZE,
    SESSION_TOKEN_DISCRIMINATOR,
    AccountKind,
    CityAccount,
    SessionToken,
    TileType,
    decode_account,
    encode_account,
)
from city_sync.errors import AccountDecodeError
from tests.city_sync.helpers import make_city, make_pubkey, make_session_token

CITY_BODY_LENGTH = GRID_SIZE * GRID_SIZE + 4 + 8 + 8 + 32


class TestCityLayout:
    """Byte layout of the city account."""

    def test_body_length(self) -> None:
        """256 tiles, u32, u64, i64 and a 32-byte key."""
        assert CityAccount.get_byte_length() == CITY_BODY_LENGTH

    def test_field_offsets(self) -> None:
        """Fields follow the tiles in declaration order, little-endian."""
        account = make_city(
            last_updated=-5,
            money=0x0102030405060708,
            population=0x0A0B0C0D,
            authority=make_pubkey(0xEE),
            tiles={(0, 1): TileType.ROAD, (1, 0): TileType.POWER_PLANT},
        )
        data = encode_account(account)
        body = data[DISCRIMINATOR_LENGTH:]

        assert data[:DISCRIMINATOR_LENGTH] == bytes(CITY_DISCRIMINATOR)
        # Tiles are stored row by row: tiles[x][y] at x * 16 + y.
        assert body[1] == TileType.ROAD
        assert body[GRID_SIZE] == TileType.POWER_PLANT
        offset = GRID_SIZE * GRID_SIZE
        assert body[offset : offset + 4] == bytes([0x0D, 0x0C, 0x0B, 0x0A])
        assert body[offset + 4 : offset + 12] == bytes(range(8, 0, -1))
        assert body[offset + 12 : offset + 20] == (-5).to_bytes(8, "little", signed=True)
        assert body[offset + 20 :] == b"\xee" * 32

    def test_decode_restores_fields(self) -> None:
        """Decoding the encoding yields an equal account."""
        account = make_city(last_updated=42, tiles={(3, 4): TileType.RESIDENTIAL})
        decoded = decode_account(CityAccount, encode_account(account))
        assert decoded == account
        assert decoded.tile_at(3, 4) is TileType.RESIDENTIAL


class TestFailClosed:
    """Malformed buffers never yield a record."""

    def test_discriminator_mismatch(self) -> None:
        """A session token buffer is not a city."""
        token = make_session_token(make_pubkey(1), make_pubkey(2))
        with pytest.raises(AccountDecodeError, match="discriminator mismatch"):
            decode_account(CityAccount, encode_account(token))

    def test_too_short_for_discriminator(self) -> None:
        """Buffers shorter than the tag are rejected."""
        with pytest.raises(AccountDecodeError, match="no discriminator"):
            decode_account(CityAccount, b"\x03\xcc")

    def test_truncated_body(self) -> None:
        """A correct tag with a short body is rejected."""
        data = encode_account(make_city())[:-1]
        with pytest.raises(AccountDecodeError, match="CityAccount"):
            decode_account(CityAccount, data)

    def test_trailing_bytes(self) -> None:
        """Extra bytes after the record are rejected."""
        data = encode_account(make_city()) + b"\x00"
        with pytest.raises(AccountDecodeError):
            decode_account(CityAccount, data)

    def test_unknown_record_type(self) -> None:
        """Only program accounts can be decoded."""
        with pytest.raises(TypeError, match="not a program account"):
            decode_account(TileType, b"")  # type: ignore[call-overload]


class TestSessionToken:
    """Session token accounts."""

    def test_decode(self) -> None:
        """The token decodes with its own discriminator."""
        token = make_session_token(make_pubkey(1), make_pubkey(2), valid_until=500)
        data = encode_account(token)
        assert data[:DISCRIMINATOR_LENGTH] == bytes(SESSION_TOKEN_DISCRIMINATOR)
        assert decode_account(SessionToken, data) == token

    def test_expiry_is_exclusive(self) -> None:
        """A token is valid strictly before valid_until."""
        token = make_session_token(make_pubkey(1), make_pubkey(2), valid_until=500)
        assert token.is_valid(499.9)
        assert not token.is_valid(500)


class TestCityAccount:
    """Helpers on the city record."""

    def test_tile_at_reads_row_then_column(self) -> None:
        """The first coordinate selects the row."""
        account = make_city(tiles={(2, 3): TileType.COMMERCIAL})
        assert account.tile_at(2, 3) is TileType.COMMERCIAL
        assert account.tile_at(3, 2) is TileType.EMPTY
        assert account.tile_grid()[2][3] == int(TileType.COMMERCIAL)

    @pytest.mark.parametrize("x, y", [(-1, 0), (0, 16), (16, 16)])
    def test_out_of_bounds(self, x: int, y: int) -> None:
        """Coordinates must be inside the grid."""
        with pytest.raises(ValueError, match="outside"):
            make_city().tile_at(x, y)

    def test_snapshot_is_plain_data(self) -> None:
        """Snapshots contain only builtins."""
        snapshot = make_city(last_updated=7, money=99).to_snapshot()
        assert snapshot["money"] == 99
        assert snapshot["last_updated"] == 7
        assert type(snapshot["money"]) is int
        assert len(snapshot["tiles"]) == GRID_SIZE

    def test_account_kinds(self) -> None:
        """Each kind maps to its record type and tag."""
        assert AccountKind.CITY.record_type is CityAccount
        assert AccountKind.SESSION_TOKEN.discriminator == SESSION_TOKEN_DISCRIMINATOR
