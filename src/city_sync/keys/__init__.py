"""Ledger keys: addresses, keypairs and program-derived addresses."""

from .base58 import b58decode, b58encode
from .keypair import Keypair, verify_signature
from .pda import create_program_address, find_program_address, is_on_curve
from .programs import (
    CITY_PROGRAM_ID,
    DELEGATION_PROGRAM_ID,
    MAGIC_CONTEXT_ID,
    MAGIC_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    derive_city_address,
    derive_delegation_accounts,
)
from .pubkey import Pubkey

__all__ = [
    "Pubkey",
    "Keypair",
    "verify_signature",
    "b58encode",
    "b58decode",
    "is_on_curve",
    "create_program_address",
    "find_program_address",
    "derive_city_address",
    "derive_delegation_accounts",
    "CITY_PROGRAM_ID",
    "DELEGATION_PROGRAM_ID",
    "SYSTEM_PROGRAM_ID",
    "MAGIC_PROGRAM_ID",
    "MAGIC_CONTEXT_ID",
]
