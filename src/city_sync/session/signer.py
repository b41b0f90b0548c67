"""Transaction signers: the main wallet and delegated session keys."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from city_sync.keys import Keypair, Pubkey
from city_sync.ledger import Transaction


@runtime_checkable
class TransactionSigner(Protocol):
    """
    Anything that can sign a transaction for one key.

    Browser wallets and session managers are adapted to this shape; the
    signing scheme behind them is opaque here.
    """

    @property
    def pubkey(self) -> Pubkey:
        """The key this signer signs for."""
        ...

    async def sign_transaction(self, transaction: Transaction) -> Transaction:
        """Return the transaction with this signer's signature attached."""
        ...


@dataclass(frozen=True, slots=True)
class KeypairSigner:
    """A signer backed by an in-process keypair."""

    keypair: Keypair

    @property
    def pubkey(self) -> Pubkey:
        """The keypair's public key."""
        return self.keypair.pubkey

    async def sign_transaction(self, transaction: Transaction) -> Transaction:
        """Sign in place."""
        return transaction.sign(self.keypair)
