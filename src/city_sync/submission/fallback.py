"""
Local-only fallback grid.

When a gameplay submission fails, the edit is applied here instead so the
player is not blocked. The grid is never sent anywhere and never replayed.
It is discarded on the next successful gameplay submission or on a resync.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from city_sync import metrics
from city_sync.codec import GRID_SIZE, CityAccount, TileType, check_coordinates

logger = logging.getLogger(__name__)


def _empty_grid() -> list[list[int]]:
    return [[int(TileType.EMPTY)] * GRID_SIZE for _ in range(GRID_SIZE)]


@dataclass(slots=True)
class LocalFallbackModel:
    """A 16x16 grid of tile codes, indexed `grid[x][y]`."""

    grid: list[list[int]] = field(default_factory=_empty_grid)
    """Current local tiles."""

    edits: list[tuple[int, int, TileType]] = field(default_factory=list)
    """Local-only edits since the last seed, in order."""

    def seed(self, account: CityAccount | None) -> None:
        """Reset to the tiles of an account (or an empty grid) and drop edits."""
        self.grid = account.tile_grid() if account is not None else _empty_grid()
        self.edits.clear()

    @property
    def diverged(self) -> bool:
        """Whether local edits exist that no ledger has seen."""
        return bool(self.edits)

    def place(self, x: int, y: int, building: TileType) -> None:
        """Place a building locally."""
        self._set(x, y, building)

    def bulldoze(self, x: int, y: int) -> None:
        """Clear a tile locally."""
        self._set(x, y, TileType.EMPTY)

    def tile_at(self, x: int, y: int) -> TileType:
        """Return the local tile at a coordinate."""
        check_coordinates(x, y)
        return TileType(self.grid[x][y])

    def discard(self, account: CityAccount | None = None) -> None:
        """Forget local edits, re-seeding from the given account."""
        if self.edits:
            logger.info("Discarding %d local-only edit(s)", len(self.edits))
        self.seed(account)

    def _set(self, x: int, y: int, tile: TileType) -> None:
        check_coordinates(x, y)
        self.grid[x][y] = int(tile)
        self.edits.append((x, y, tile))
        metrics.fallback_mutations.inc()
        logger.debug("Local-only edit at (%d, %d): %s", x, y, tile.name)
