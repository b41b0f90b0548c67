"""
Instruction builders.

Each builder resolves the account list the city program expects for one
instruction. An optional account that is not supplied is passed as the
program id itself.
"""

from __future__ import annotations

from city_sync.codec import (
    TileType,
    bulldoze_data,
    commit_data,
    delegate_data,
    initialize_city_data,
    place_building_data,
    undelegate_data,
)
from city_sync.keys import (
    CITY_PROGRAM_ID,
    DELEGATION_PROGRAM_ID,
    MAGIC_CONTEXT_ID,
    MAGIC_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    Pubkey,
    derive_delegation_accounts,
)
from city_sync.ledger import AccountMeta, Instruction


def initialize_city(
    city: Pubkey, authority: Pubkey, program_id: Pubkey = CITY_PROGRAM_ID
) -> Instruction:
    """Create the city account, paid for by the authority."""
    return Instruction(
        program_id=program_id,
        accounts=(
            AccountMeta(city, is_writable=True),
            AccountMeta(authority, is_signer=True, is_writable=True),
            AccountMeta(SYSTEM_PROGRAM_ID),
        ),
        data=initialize_city_data(),
    )


def _gameplay_accounts(
    city: Pubkey, signer: Pubkey, session_token: Pubkey | None, program_id: Pubkey
) -> tuple[AccountMeta, ...]:
    return (
        AccountMeta(city, is_writable=True),
        AccountMeta(signer, is_signer=True, is_writable=True),
        AccountMeta(session_token if session_token is not None else program_id),
    )


def place_building(
    city: Pubkey,
    signer: Pubkey,
    x: int,
    y: int,
    building: TileType,
    session_token: Pubkey | None = None,
    program_id: Pubkey = CITY_PROGRAM_ID,
) -> Instruction:
    """Place a building at (x, y)."""
    return Instruction(
        program_id=program_id,
        accounts=_gameplay_accounts(city, signer, session_token, program_id),
        data=place_building_data(x, y, building),
    )


def bulldoze(
    city: Pubkey,
    signer: Pubkey,
    x: int,
    y: int,
    session_token: Pubkey | None = None,
    program_id: Pubkey = CITY_PROGRAM_ID,
) -> Instruction:
    """Clear the tile at (x, y)."""
    return Instruction(
        program_id=program_id,
        accounts=_gameplay_accounts(city, signer, session_token, program_id),
        data=bulldoze_data(x, y),
    )


def delegate(
    city: Pubkey,
    payer: Pubkey,
    program_id: Pubkey = CITY_PROGRAM_ID,
    delegation_program: Pubkey = DELEGATION_PROGRAM_ID,
) -> Instruction:
    """Hand the city account to the delegation program."""
    buffer, record, metadata = derive_delegation_accounts(city, program_id, delegation_program)
    return Instruction(
        program_id=program_id,
        accounts=(
            AccountMeta(payer, is_signer=True),
            AccountMeta(buffer, is_writable=True),
            AccountMeta(record, is_writable=True),
            AccountMeta(metadata, is_writable=True),
            AccountMeta(city, is_writable=True),
            AccountMeta(program_id),
            AccountMeta(delegation_program),
            AccountMeta(SYSTEM_PROGRAM_ID),
        ),
        data=delegate_data(),
    )


def _magic_accounts(city: Pubkey, payer: Pubkey) -> tuple[AccountMeta, ...]:
    return (
        AccountMeta(payer, is_signer=True, is_writable=True),
        AccountMeta(city, is_writable=True),
        AccountMeta(MAGIC_PROGRAM_ID),
        AccountMeta(MAGIC_CONTEXT_ID, is_writable=True),
    )


def commit(city: Pubkey, payer: Pubkey, program_id: Pubkey = CITY_PROGRAM_ID) -> Instruction:
    """Schedule a commit of rollup state to the base ledger."""
    return Instruction(
        program_id=program_id, accounts=_magic_accounts(city, payer), data=commit_data()
    )


def undelegate(city: Pubkey, payer: Pubkey, program_id: Pubkey = CITY_PROGRAM_ID) -> Instruction:
    """Schedule a commit and return the account to the city program."""
    return Instruction(
        program_id=program_id, accounts=_magic_accounts(city, payer), data=undelegate_data()
    )
