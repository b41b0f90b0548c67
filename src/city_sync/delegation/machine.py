"""
Delegation state machine.

Tracks which ledger owns write authority for one account. The status is never
stored anywhere; it is re-derived from the base-ledger owner whenever fresh
data arrives.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from city_sync import metrics
from city_sync.keys import DELEGATION_PROGRAM_ID, Pubkey

from .states import DelegationStatus, derive_status

logger = logging.getLogger(__name__)

OwnershipProbe = Callable[[], Awaitable[Pubkey | None]]
"""Reads the current base-ledger owner of the account (None if absent)."""

StatusListener = Callable[[DelegationStatus, DelegationStatus], None]
"""Called with (previous, current) whenever the settled status changes."""


@dataclass(slots=True)
class DelegationStateMachine:
    """
    Delegation status for one account.

    `recompute` passes through CHECKING and settles. Listeners only hear about
    settled changes, so re-deriving the same status is a no-op for every
    cache that depends on it.
    """

    delegation_program: Pubkey = DELEGATION_PROGRAM_ID
    """The owner identity that means "delegated"."""

    _status: DelegationStatus = field(default=DelegationStatus.CHECKING)
    """Current status."""

    _settled: DelegationStatus | None = field(default=None)
    """Last settled status, before any CHECKING phase."""

    _listeners: list[StatusListener] = field(default_factory=list)
    """Settled-change listeners."""

    @property
    def status(self) -> DelegationStatus:
        """Current status, possibly CHECKING."""
        return self._status

    @property
    def settled_status(self) -> DelegationStatus | None:
        """The last definite status, ignoring any probe in flight."""
        return self._settled

    @property
    def is_delegated(self) -> bool:
        """Whether the last settled status is DELEGATED."""
        return self._settled is DelegationStatus.DELEGATED

    def on_change(self, listener: StatusListener) -> None:
        """Register a listener for settled status changes."""
        self._listeners.append(listener)

    def derive(self, owner: Pubkey | None) -> DelegationStatus:
        """Derive a status from an owner, without changing state."""
        return derive_status(owner, self.delegation_program)

    async def recompute(self, probe: OwnershipProbe) -> bool:
        """
        Re-derive the status from a fresh ownership probe.

        Any probe failure settles on UNDELEGATED, toward the canonical ledger.

        Returns:
            True if the settled status changed.
        """
        self._status = DelegationStatus.CHECKING
        try:
            owner = await probe()
        except Exception as exc:
            logger.warning("Ownership probe failed, assuming undelegated: %s", exc)
            return self._settle(DelegationStatus.UNDELEGATED)
        return self._settle(self.derive(owner))

    def force(self, status: DelegationStatus) -> bool:
        """
        Set a settled status without probing.

        Returns:
            True if the settled status changed.
        """
        if not status.is_settled:
            raise ValueError("Cannot force the transient CHECKING status")
        return self._settle(status)

    def reset(self) -> None:
        """Return to the initial CHECKING state with no settled status."""
        self._status = DelegationStatus.CHECKING
        self._settled = None

    def _settle(self, status: DelegationStatus) -> bool:
        """Move to a settled status and notify on change."""
        if not self._status.can_transition_to(status) and self._status is not status:
            raise ValueError(f"Invalid state transition: {self._status.name} -> {status.name}")

        previous = self._settled
        self._status = status
        self._settled = status
        metrics.delegated.set(1.0 if status is DelegationStatus.DELEGATED else 0.0)

        if previous is status:
            return False

        logger.info(
            "Delegation status %s -> %s",
            previous.value if previous else "unknown",
            status.value,
        )
        for listener in list(self._listeners):
            listener(previous or DelegationStatus.CHECKING, status)
        return True
