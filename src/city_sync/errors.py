"""
Error taxonomy of the sync layer.

- `AccountDecodeError`: account data with an unexpected layout. Logged and
  absorbed; the previously cached view is kept.
- `SubmissionError`: building, signing, sending or confirming a transaction
  failed. Surfaced to the caller with the underlying cause.
- `PreconditionError`: the intent cannot be attempted at all. Raised before
  any network activity.

A missing account is not an error here. The ledger layer raises
`AccountNotFoundError`, which the sync layer turns into "no account yet".
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from city_sync.ledger.types import LedgerKind
    from city_sync.submission.intents import Intent


class CitySyncError(Exception):
    """
    Base exception for every error raised by the sync layer.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class AccountDecodeError(CitySyncError):
    """
    Raised when account data cannot be decoded.

    Attributes:
        record_name: The record type that was being decoded.
        detail: What was wrong with the buffer.
    """

    def __init__(self, record_name: str, detail: str) -> None:
        self.record_name = record_name
        self.detail = detail
        super().__init__(f"Failed to decode {record_name}: {detail}")


class PreconditionError(CitySyncError):
    """Raised when an intent is issued in a state that cannot serve it."""


class SubmissionError(CitySyncError):
    """
    Raised when a transaction could not be built, signed, sent or confirmed.

    Attributes:
        intent: The intent that failed.
        ledger: The ledger it was routed to.
        cause: The underlying exception.
    """

    def __init__(
        self,
        intent: Intent,
        ledger: LedgerKind,
        message: str,
        cause: BaseException | None = None,
    ) -> None:
        self.intent = intent
        self.ledger = ledger
        self.cause = cause
        super().__init__(message)
