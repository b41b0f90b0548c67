"""Tile-type codes stored in the city grid."""

from __future__ import annotations

from enum import IntEnum
from typing import Final


class TileType(IntEnum):
    """
    Closed enumeration of tile codes.

    The on-chain program rejects any code outside this set with
    `InvalidBuildingType`, so the client refuses to build such intents.
    """

    EMPTY = 0
    ROAD = 1
    RESIDENTIAL = 2
    COMMERCIAL = 3
    INDUSTRIAL = 4
    POWER_PLANT = 5
    POWER_LINE = 6

    @property
    def is_building(self) -> bool:
        """Whether the code can be placed by a build intent."""
        return self is not TileType.EMPTY

    @property
    def tool_name(self) -> str:
        """The UI tool name for this code (`power-plant`, `road`, ...)."""
        return self.name.lower().replace("_", "-")

    @classmethod
    def from_tool(cls, tool: str) -> TileType:
        """
        Map a UI tool name to its tile code.

        Raises:
            ValueError: If the tool name is unknown.
        """
        try:
            return TOOL_TILE_TYPES[tool]
        except KeyError:
            raise ValueError(f"Unknown tool: {tool!r}") from None


TOOL_TILE_TYPES: Final[dict[str, TileType]] = {
    tile.tool_name: tile for tile in TileType if tile.is_building
}
"""Tool name to tile code, for every placeable tile."""
