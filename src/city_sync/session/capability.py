"""
Read-only view of the external session subsystem.

A session grants a short-lived key the right to sign gameplay transactions
on behalf of the wallet. The grant lives on-chain as a `SessionToken`
account. Creating and revoking sessions is the session subsystem's job; the
sync layer only asks whether a usable session signer exists right now.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from city_sync.codec import SessionToken
from city_sync.keys import Pubkey

from .signer import TransactionSigner

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SessionCapability:
    """The current session grant, if any."""

    token: SessionToken | None = None
    """The decoded grant."""

    token_address: Pubkey | None = None
    """Address of the token account. Passed to gameplay instructions."""

    signer: TransactionSigner | None = None
    """The session signer issued alongside the token."""

    time_fn: Callable[[], float] = field(default=time.time)
    """Time source (injectable for deterministic testing)."""

    def is_active(self) -> bool:
        """Whether a token exists and has not expired."""
        return self.token is not None and self.token.is_valid(self.time_fn())

    def usable_signer(self) -> TransactionSigner | None:
        """
        Return the session signer if it can be used right now.

        Requires a live token, a token address to reference, and a signer
        that actually exposes `sign_transaction` for the granted key.
        """
        token = self.token
        if token is None or self.token_address is None or self.signer is None:
            return None
        if not token.is_valid(self.time_fn()):
            return None
        if not callable(getattr(self.signer, "sign_transaction", None)):
            logger.debug("Session signer has no usable sign_transaction")
            return None
        if self.signer.pubkey != token.session_signer:
            logger.warning(
                "Session signer %s does not match token grant %s",
                self.signer.pubkey,
                token.session_signer,
            )
            return None
        return self.signer

    def clear(self) -> None:
        """Forget the current grant."""
        self.token = None
        self.token_address = None
        self.signer = None
