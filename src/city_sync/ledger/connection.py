"""The ledger connection interface the sync layer is written against."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol

from city_sync.keys import Pubkey

from .types import AccountInfo, LedgerKind

AccountChangeCallback = Callable[[AccountInfo], Awaitable[None]]
"""Async listener invoked with every account change notification."""


class LedgerConnection(Protocol):
    """
    Point reads, change subscriptions, submission and confirmation on one ledger.

    Every method suspends the caller without blocking other tasks.
    """

    @property
    def kind(self) -> LedgerKind:
        """Which ledger this connection talks to."""
        ...

    async def get_account_info(self, address: Pubkey) -> AccountInfo:
        """
        Read an account.

        Raises:
            AccountNotFoundError: If the account does not exist.
            LedgerError: On transport or RPC failures.
        """
        ...

    async def get_latest_blockhash(self) -> str:
        """Return a fresh validity anchor (base58 blockhash) from this ledger."""
        ...

    async def send_raw_transaction(self, raw: bytes) -> str:
        """Broadcast a signed transaction. Returns its signature."""
        ...

    async def confirm_transaction(self, signature: str) -> None:
        """
        Wait until a transaction reaches the configured commitment.

        Raises:
            TransactionFailedError: If the transaction executed with an error.
            ConfirmationTimeoutError: If confirmation did not arrive in time.
        """
        ...

    async def get_transaction_logs(self, signature: str) -> list[str]:
        """Return the log messages of a landed transaction."""
        ...

    async def subscribe_account(self, address: Pubkey, callback: AccountChangeCallback) -> int:
        """Register a change listener. Returns the subscription id."""
        ...

    async def unsubscribe_account(self, subscription_id: int) -> None:
        """Release a change listener."""
        ...

    async def close(self) -> None:
        """Release every network resource held by the connection."""
        ...
