"""Connections to the base ledger and the rollup."""

from .connection import AccountChangeCallback, LedgerConnection
from .errors import (
    AccountNotFoundError,
    ConfirmationTimeoutError,
    LedgerError,
    LedgerRpcError,
    TransactionFailedError,
)
from .rpc import RpcLedgerConnection, parse_account_info
from .transaction import AccountMeta, Instruction, Message, Transaction
from .types import AccountInfo, Commitment, LedgerKind

__all__ = [
    # Interface
    "LedgerConnection",
    "AccountChangeCallback",
    "RpcLedgerConnection",
    "parse_account_info",
    # Types
    "AccountInfo",
    "Commitment",
    "LedgerKind",
    # Transactions
    "AccountMeta",
    "Instruction",
    "Message",
    "Transaction",
    # Errors
    "LedgerError",
    "LedgerRpcError",
    "AccountNotFoundError",
    "TransactionFailedError",
    "ConfirmationTimeoutError",
]
