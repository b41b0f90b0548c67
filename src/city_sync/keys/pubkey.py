"""Account keys and their base58 text form."""

from __future__ import annotations

from typing import Any

from typing_extensions import Self

from city_sync.types import Bytes32

from .base58 import b58decode, b58encode


class Pubkey(Bytes32):
    """
    A 32-byte ledger address.

    Addresses are either Ed25519 public keys (wallets, session signers) or
    off-curve program-derived addresses (accounts owned by a program).
    """

    def __new__(cls, value: Any = b"") -> Self:
        """Accept raw bytes or a base58 string."""
        if isinstance(value, str):
            value = b58decode(value)
        return super().__new__(cls, value)

    @classmethod
    def from_base58(cls, text: str) -> Self:
        """Parse the base58 text form."""
        return cls(b58decode(text))

    def to_base58(self) -> str:
        """Return the base58 text form."""
        return b58encode(bytes(self))

    def to_text(self) -> str:
        """Serialize as base58 in JSON."""
        return self.to_base58()

    def __str__(self) -> str:
        return self.to_base58()
