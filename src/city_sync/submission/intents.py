"""
Intents: typed requests for a state change, before routing and signing.

Gameplay intents edit one tile and may be signed by a session key.
Lifecycle intents move the account between ledgers and never may.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from city_sync.codec import TileType, check_coordinates


@dataclass(frozen=True, slots=True)
class Intent:
    """Base class for every intent."""

    session_eligible: ClassVar[bool] = False
    """Whether a session signer may sign this intent."""

    requires_account: ClassVar[bool] = True
    """Whether the city account must exist before this intent is issued."""

    requires_delegation: ClassVar[bool] = False
    """Whether the account must be delegated before this intent is issued."""

    @property
    def name(self) -> str:
        """Short name used in logs and metric labels."""
        return type(self).__name__

    @property
    def is_gameplay(self) -> bool:
        """Whether this intent edits a tile."""
        return False


@dataclass(frozen=True, slots=True)
class Initialize(Intent):
    """Create the city account for the connected wallet."""

    requires_account: ClassVar[bool] = False


@dataclass(frozen=True, slots=True)
class TileIntent(Intent):
    """An intent targeting one grid coordinate."""

    session_eligible: ClassVar[bool] = True

    x: int
    y: int

    def __post_init__(self) -> None:
        check_coordinates(self.x, self.y)

    @property
    def is_gameplay(self) -> bool:
        """Tile edits are gameplay."""
        return True


@dataclass(frozen=True, slots=True)
class PlaceBuilding(TileIntent):
    """Place a building on a tile."""

    building_type: TileType

    def __post_init__(self) -> None:
        check_coordinates(self.x, self.y)
        if not TileType(self.building_type).is_building:
            raise ValueError(f"{TileType(self.building_type).name} cannot be placed")


@dataclass(frozen=True, slots=True)
class Bulldoze(TileIntent):
    """Clear a tile."""


@dataclass(frozen=True, slots=True)
class Delegate(Intent):
    """Hand write authority to the rollup."""


@dataclass(frozen=True, slots=True)
class Commit(Intent):
    """Flush rollup state to the base ledger, staying delegated."""

    requires_delegation: ClassVar[bool] = True


@dataclass(frozen=True, slots=True)
class Undelegate(Intent):
    """Flush rollup state and return write authority to the base ledger."""

    requires_delegation: ClassVar[bool] = True
