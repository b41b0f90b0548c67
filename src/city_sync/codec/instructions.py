"""
Instruction data for the city program.

Each instruction is an 8-byte discriminator followed by its arguments,
encoded the same way as account fields.
"""

from __future__ import annotations

from enum import Enum
from typing import Final

from city_sync.types import Bytes8, Uint8

from .accounts import check_coordinates
from .tiles import TileType


class InstructionName(Enum):
    """Program instructions the client can issue, with their discriminators."""

    INITIALIZE_CITY = (197, 90, 209, 212, 126, 67, 110, 204)
    PLACE_BUILDING = (75, 157, 111, 168, 31, 210, 104, 227)
    BULLDOZE = (56, 145, 179, 49, 2, 105, 63, 157)
    DELEGATE = (90, 147, 75, 178, 85, 88, 4, 137)
    COMMIT = (223, 140, 142, 165, 229, 208, 156, 74)
    UNDELEGATE = (131, 148, 180, 198, 91, 104, 42, 238)

    @property
    def discriminator(self) -> Bytes8:
        """The 8-byte tag that selects the instruction handler."""
        return Bytes8(bytes(self.value))


def encode_instruction(name: InstructionName, *args: int) -> bytes:
    """Encode a discriminator followed by u8 arguments."""
    return bytes(name.discriminator) + b"".join(Uint8(arg).encode_bytes() for arg in args)


def initialize_city_data() -> bytes:
    """Data for `initialize_city`."""
    return encode_instruction(InstructionName.INITIALIZE_CITY)


def place_building_data(x: int, y: int, building: TileType) -> bytes:
    """Data for `place_building(x, y, building_type)`."""
    check_coordinates(x, y)
    if not building.is_building:
        raise ValueError(f"{building.name} cannot be placed")
    return encode_instruction(InstructionName.PLACE_BUILDING, x, y, int(building))


def bulldoze_data(x: int, y: int) -> bytes:
    """Data for `bulldoze(x, y)`."""
    check_coordinates(x, y)
    return encode_instruction(InstructionName.BULLDOZE, x, y)


def delegate_data() -> bytes:
    """Data for `delegate`."""
    return encode_instruction(InstructionName.DELEGATE)


def commit_data() -> bytes:
    """Data for `commit`."""
    return encode_instruction(InstructionName.COMMIT)


def undelegate_data() -> bytes:
    """Data for `undelegate`."""
    return encode_instruction(InstructionName.UNDELEGATE)


PROGRAM_ERRORS: Final[dict[int, tuple[str, str]]] = {
    6000: ("OutOfBounds", "Coordinates out of bounds"),
    6001: ("InvalidBuildingType", "Invalid building type"),
    6002: ("InvalidAuth", "Invalid authentication"),
    6003: ("NotEnoughMoney", "Not enough money"),
}
"""Custom error codes raised by the city program."""


def describe_program_error(code: int) -> str:
    """Return a readable message for a custom program error code."""
    if code in PROGRAM_ERRORS:
        name, message = PROGRAM_ERRORS[code]
        return f"{name}: {message}"
    return f"Custom program error {code}"
