"""
Account and instruction codec for the city program.

Treated by the sync layer as a black-box serialize/deserialize pair.
"""

from .account_codec import DISCRIMINATOR_LENGTH, AccountKind, decode_account, encode_account
from .accounts import (
    CITY_DISCRIMINATOR,
    GRID_SIZE,
    SESSION_TOKEN_DISCRIMINATOR,
    CityAccount,
    SessionToken,
    TileGrid,
    TileRow,
    check_coordinates,
)
from .instructions import (
    PROGRAM_ERRORS,
    InstructionName,
    bulldoze_data,
    commit_data,
    delegate_data,
    describe_program_error,
    initialize_city_data,
    place_building_data,
    undelegate_data,
)
from .tiles import TOOL_TILE_TYPES, TileType

__all__ = [
    # Records
    "CityAccount",
    "SessionToken",
    "TileGrid",
    "TileRow",
    "TileType",
    "TOOL_TILE_TYPES",
    "GRID_SIZE",
    "check_coordinates",
    # Account codec
    "AccountKind",
    "DISCRIMINATOR_LENGTH",
    "CITY_DISCRIMINATOR",
    "SESSION_TOKEN_DISCRIMINATOR",
    "decode_account",
    "encode_account",
    # Instructions
    "InstructionName",
    "initialize_city_data",
    "place_building_data",
    "bulldoze_data",
    "delegate_data",
    "commit_data",
    "undelegate_data",
    "PROGRAM_ERRORS",
    "describe_program_error",
]
