"""Plain data shared by both ledger connections."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from city_sync.keys import Pubkey


class LedgerKind(Enum):
    """The two ledgers a city account can live on."""

    BASE = "base"
    """The slow, canonical chain holding durable account state."""

    ROLLUP = "rollup"
    """The fast, ephemeral layer that delegated accounts are written on."""


class Commitment(str, Enum):
    """How settled a read or a confirmation must be."""

    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"

    def is_reached_by(self, status: str | None) -> bool:
        """Whether a reported confirmation status satisfies this commitment."""
        order = [c.value for c in Commitment]
        return status in order and order.index(status) >= order.index(self.value)


@dataclass(frozen=True, slots=True)
class AccountInfo:
    """A raw account as returned by a point read or a change notification."""

    owner: Pubkey
    """The program that owns the account."""

    data: bytes
    """The raw account data."""

    lamports: int = 0
    """Balance in the smallest native unit."""

    executable: bool = False
    """Whether the account holds a program."""
