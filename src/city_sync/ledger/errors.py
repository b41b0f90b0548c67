"""Errors raised by ledger connections."""

from __future__ import annotations

from city_sync.keys import Pubkey


class LedgerError(Exception):
    """Base class for every transport or ledger-reported failure."""


class LedgerRpcError(LedgerError):
    """
    A JSON-RPC call returned an error object.

    Attributes:
        code: The JSON-RPC error code.
        data: Optional structured error detail.
    """

    def __init__(self, code: int, message: str, data: object = None) -> None:
        self.code = code
        self.data = data
        super().__init__(f"RPC error {code}: {message}")


class AccountNotFoundError(LedgerError):
    """The requested account does not exist on the ledger."""

    def __init__(self, address: Pubkey) -> None:
        self.address = address
        super().__init__(f"Account does not exist: {address}")


class TransactionFailedError(LedgerError):
    """
    A transaction landed but its execution failed.

    Attributes:
        signature: The transaction signature.
        error: The error object reported by the ledger.
        custom_code: The custom program error code, if any.
    """

    def __init__(self, signature: str, error: object) -> None:
        self.signature = signature
        self.error = error
        self.custom_code = _extract_custom_code(error)
        super().__init__(f"Transaction {signature} failed: {error}")


class ConfirmationTimeoutError(LedgerError):
    """A transaction did not reach the requested commitment in time."""

    def __init__(self, signature: str, timeout: float) -> None:
        self.signature = signature
        self.timeout = timeout
        super().__init__(f"Transaction {signature} not confirmed within {timeout:.1f}s")


def _extract_custom_code(error: object) -> int | None:
    """
    Pull the custom program error code out of a ledger error object.

    The shape is `{"InstructionError": [index, {"Custom": code}]}`.
    """
    if not isinstance(error, dict):
        return None
    instruction_error = error.get("InstructionError")
    if not isinstance(instruction_error, list) or len(instruction_error) != 2:
        return None
    detail = instruction_error[1]
    if isinstance(detail, dict) and isinstance(detail.get("Custom"), int):
        return detail["Custom"]
    return None
