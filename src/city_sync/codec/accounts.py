"""
Account records owned by the city program.

Every account buffer begins with an 8-byte discriminator that names the
record type, followed by the record fields in declaration order.
"""

from __future__ import annotations

from typing import Any, Final

from city_sync.keys import Pubkey
from city_sync.types import Bytes8, Int64, Record, Uint8, Uint32, Uint64, Vector

from .tiles import TileType

GRID_SIZE: Final = 16
"""Width and height of the square tile grid."""


class TileRow(Vector[Uint8]):
    """One row of tile codes."""

    ELEMENT_TYPE = Uint8
    LENGTH = GRID_SIZE


class TileGrid(Vector[TileRow]):
    """The full grid. Indexed as `grid[x][y]`."""

    ELEMENT_TYPE = TileRow
    LENGTH = GRID_SIZE

    @classmethod
    def empty(cls) -> TileGrid:
        """A grid with every tile set to `EMPTY`."""
        return cls(data=[[0] * GRID_SIZE for _ in range(GRID_SIZE)])


def check_coordinates(x: int, y: int) -> None:
    """
    Reject coordinates outside the grid.

    Raises:
        ValueError: If either coordinate is out of bounds.
    """
    if not (0 <= x < GRID_SIZE and 0 <= y < GRID_SIZE):
        raise ValueError(f"Coordinates ({x}, {y}) are outside the {GRID_SIZE}x{GRID_SIZE} grid")


class CityAccount(Record):
    """The authoritative state of one city."""

    tiles: TileGrid
    """Tile codes, `tiles[x][y]`."""

    population: Uint32
    """Current population."""

    money: Uint64
    """Treasury balance."""

    last_updated: Int64
    """Unix timestamp of the last mutation. Orders competing reads."""

    authority: Pubkey
    """The owning identity. The account address is derived from it."""

    def tile_at(self, x: int, y: int) -> TileType:
        """Return the tile code at a coordinate."""
        check_coordinates(x, y)
        return TileType(int(self.tiles[x][y]))

    def tile_grid(self) -> list[list[int]]:
        """The grid as plain nested lists, for renderers."""
        return [[int(code) for code in row] for row in self.tiles]

    def to_snapshot(self) -> dict[str, Any]:
        """A plain-data snapshot of the account."""
        return {
            "tiles": self.tile_grid(),
            "population": int(self.population),
            "money": int(self.money),
            "last_updated": int(self.last_updated),
            "authority": str(self.authority),
        }


class SessionToken(Record):
    """
    A short-lived signing grant issued by the session subsystem.

    Read-only here: the token is created and revoked elsewhere.
    """

    authority: Pubkey
    """The wallet that granted the session."""

    target_program: Pubkey
    """The program the session signer may act on."""

    session_signer: Pubkey
    """The delegated signing key."""

    valid_until: Int64
    """Unix timestamp after which the grant is expired."""

    def is_valid(self, now: float) -> bool:
        """Whether the grant is still live at `now`."""
        return now < int(self.valid_until)


CITY_DISCRIMINATOR: Final = Bytes8(bytes([3, 204, 223, 157, 129, 30, 45, 230]))
"""Discriminator prefix of city account data."""

SESSION_TOKEN_DISCRIMINATOR: Final = Bytes8(bytes([233, 4, 115, 14, 46, 21, 1, 15]))
"""Discriminator prefix of session token account data."""
