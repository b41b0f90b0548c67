"""Signers and the session capability."""

from .capability import SessionCapability
from .signer import KeypairSigner, TransactionSigner

__all__ = [
    "KeypairSigner",
    "SessionCapability",
    "TransactionSigner",
]
