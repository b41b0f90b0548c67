"""
Cached account views and the single rule that reconciles them.

Each ledger has one cached view. Two writers feed it: subscription pushes and
explicit fetches after submissions. Both go through `merge_view`, so the
cache only ever holds the newest decoded record and never a field-by-field
mix of two reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from city_sync.codec import CityAccount
from city_sync.ledger import LedgerKind


class ViewSource(Enum):
    """How a view's record reached the cache."""

    SUBSCRIPTION = "subscription"
    """Pushed by a change notification."""

    FETCH = "fetch"
    """Read explicitly with a point read."""


@dataclass(frozen=True, slots=True)
class LedgerView:
    """A cached account snapshot with its provenance."""

    account: CityAccount
    """The decoded record."""

    ledger: LedgerKind
    """The ledger it was read from."""

    source: ViewSource
    """How it was read."""

    @property
    def last_updated(self) -> int:
        """The record's mutation timestamp."""
        return int(self.account.last_updated)


def merge_view(current: LedgerView | None, incoming: LedgerView) -> LedgerView:
    """
    Reconcile a cached view with a newly decoded read.

    The read with the higher `last_updated` wins. Ties keep the cached view.

    Raises:
        ValueError: If the two views come from different ledgers.
    """
    if current is None:
        return incoming
    if current.ledger is not incoming.ledger:
        raise ValueError(
            f"Cannot merge a {incoming.ledger.value} read into the {current.ledger.value} view"
        )
    if incoming.last_updated > current.last_updated:
        return incoming
    return current
