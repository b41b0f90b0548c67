"""
Intent routing.

A fixed policy table decides the target ledger and whether the main wallet
must sign. Lifecycle intents are always pinned to the main wallet: a
short-lived session key must never be able to move delegation state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

from city_sync.delegation import DelegationStatus
from city_sync.ledger import LedgerKind

from .intents import Bulldoze, Commit, Delegate, Initialize, Intent, PlaceBuilding, Undelegate

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Route:
    """Where an intent goes and who may sign it."""

    ledger: LedgerKind
    """The ledger the transaction is built for and sent to."""

    forced_main_wallet: bool
    """Whether the main wallet must sign even if a session is available."""


_BASE_MAIN: Final = Route(LedgerKind.BASE, forced_main_wallet=True)
_ROLLUP_MAIN: Final = Route(LedgerKind.ROLLUP, forced_main_wallet=True)
_ROLLUP_SESSION: Final = Route(LedgerKind.ROLLUP, forced_main_wallet=False)

ROUTES: Final[dict[tuple[type[Intent], bool], Route]] = {
    (Initialize, False): _BASE_MAIN,
    (Initialize, True): _BASE_MAIN,
    (PlaceBuilding, False): _BASE_MAIN,
    (PlaceBuilding, True): _ROLLUP_SESSION,
    (Bulldoze, False): _BASE_MAIN,
    (Bulldoze, True): _ROLLUP_SESSION,
    (Delegate, False): _BASE_MAIN,
    (Delegate, True): _BASE_MAIN,
    (Commit, False): _ROLLUP_MAIN,
    (Commit, True): _ROLLUP_MAIN,
    (Undelegate, False): _ROLLUP_MAIN,
    (Undelegate, True): _ROLLUP_MAIN,
}
"""Policy table keyed by (intent type, delegated)."""


def route(intent: Intent, status: DelegationStatus) -> Route:
    """
    Look up the route of an intent.

    Only a settled DELEGATED status counts as delegated. CHECKING routes
    like UNDELEGATED, toward the canonical ledger.

    Raises:
        KeyError: If the intent type has no entry in the table.
    """
    delegated = status is DelegationStatus.DELEGATED
    selected = ROUTES[(type(intent), delegated)]
    logger.debug(
        "Routing %s (%s) to %s%s",
        intent.name,
        status.value,
        selected.ledger.value,
        " with main wallet" if selected.forced_main_wallet else "",
    )
    return selected
