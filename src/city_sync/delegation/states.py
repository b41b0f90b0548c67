"""Delegation status state machine."""

from __future__ import annotations

from enum import Enum

from city_sync.keys import DELEGATION_PROGRAM_ID, Pubkey


class DelegationStatus(Enum):
    """
    Which ledger currently holds write authority for a city account.

    State Machine Diagram
    ---------------------
    ::

        CHECKING --> DELEGATED
            |  ^        ^  |
            v  |        |  v
          UNDELEGATED --+--+

    Transitions
    -----------
    Any -> CHECKING
        - Triggered when: a status re-derivation starts
        - Action: none; the previous caches stay untouched

    CHECKING -> DELEGATED | UNDELEGATED
        - Triggered when: the ownership probe settles (or fails, which
          settles on UNDELEGATED)

    DELEGATED <-> UNDELEGATED
        - Triggered when: a Delegate or Undelegate intent completes
    """

    UNDELEGATED = "undelegated"
    """
    The base ledger owns write authority.

    Gameplay intents are sent to the base ledger with the main wallet.
    Only the base view is meaningful.
    """

    DELEGATED = "delegated"
    """
    The rollup owns write authority.

    The base copy is frozen under the delegation program. Gameplay intents go
    to the rollup and may use a session signer.
    """

    CHECKING = "checking"
    """Transient state while ownership is being probed."""

    def can_transition_to(self, target: DelegationStatus) -> bool:
        """Check if transition to target state is valid."""
        return target in _VALID_TRANSITIONS.get(self, set())

    @property
    def is_settled(self) -> bool:
        """Whether the status is a definite answer."""
        return self is not DelegationStatus.CHECKING


_VALID_TRANSITIONS: dict[DelegationStatus, set[DelegationStatus]] = {
    DelegationStatus.CHECKING: {DelegationStatus.DELEGATED, DelegationStatus.UNDELEGATED},
    DelegationStatus.UNDELEGATED: {DelegationStatus.CHECKING, DelegationStatus.DELEGATED},
    DelegationStatus.DELEGATED: {DelegationStatus.CHECKING, DelegationStatus.UNDELEGATED},
}
"""Valid state transitions for the delegation state machine."""


def derive_status(
    owner: Pubkey | None,
    delegation_program: Pubkey = DELEGATION_PROGRAM_ID,
) -> DelegationStatus:
    """
    Derive the delegation status from the base-ledger owner of the account.

    Pure: the same owner always yields the same status.

    Args:
        owner: The owning program, or None when the account does not exist.
        delegation_program: The well-known delegation program identity.
    """
    if owner is not None and owner == delegation_program:
        return DelegationStatus.DELEGATED
    return DelegationStatus.UNDELEGATED
