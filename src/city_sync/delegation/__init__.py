"""Delegation status tracking."""

from .machine import DelegationStateMachine, OwnershipProbe, StatusListener
from .states import DelegationStatus, derive_status

__all__ = [
    "DelegationStateMachine",
    "DelegationStatus",
    "OwnershipProbe",
    "StatusListener",
    "derive_status",
]
