"""Well-known program and account identities."""

from __future__ import annotations

from typing import Final

from .pda import find_program_address
from .pubkey import Pubkey

CITY_PROGRAM_ID: Final = Pubkey.from_base58("6U4BoX8jTdsJca3N6B1H42x4NkCeMVV667QkDBV8bdKq")
"""The city-builder program that owns undelegated city accounts."""

DELEGATION_PROGRAM_ID: Final = Pubkey.from_base58("DELeGGvXpWV2fqJUhqcF5ZSYMS4JTLjteaAMARRSaeSh")
"""Owner of every account whose write authority is delegated to the rollup."""

SYSTEM_PROGRAM_ID: Final = Pubkey.from_base58("11111111111111111111111111111111")
"""The system program. Creates accounts and transfers lamports."""

MAGIC_PROGRAM_ID: Final = Pubkey.from_base58("Magic11111111111111111111111111111111111111")
"""Rollup-side program that schedules commits and undelegations."""

MAGIC_CONTEXT_ID: Final = Pubkey.from_base58("MagicContext1111111111111111111111111111111")
"""Rollup-side account that queues scheduled commits."""

BUFFER_SEED: Final = b"buffer"
DELEGATION_RECORD_SEED: Final = b"delegation"
DELEGATION_METADATA_SEED: Final = b"delegation-metadata"


def derive_city_address(authority: Pubkey, program_id: Pubkey = CITY_PROGRAM_ID) -> Pubkey:
    """Return the single city account address for an authority."""
    address, _ = find_program_address([bytes(authority)], program_id)
    return address


def derive_delegation_accounts(
    city: Pubkey,
    owner_program: Pubkey = CITY_PROGRAM_ID,
    delegation_program: Pubkey = DELEGATION_PROGRAM_ID,
) -> tuple[Pubkey, Pubkey, Pubkey]:
    """
    Derive the bookkeeping accounts the delegate instruction touches.

    Returns:
        (buffer, delegation record, delegation metadata).
    """
    buffer, _ = find_program_address([BUFFER_SEED, bytes(city)], owner_program)
    record, _ = find_program_address([DELEGATION_RECORD_SEED, bytes(city)], delegation_program)
    metadata, _ = find_program_address(
        [DELEGATION_METADATA_SEED, bytes(city)], delegation_program
    )
    return buffer, record, metadata
