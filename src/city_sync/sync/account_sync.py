"""
Dual-ledger account sync.

The Core Problem
----------------
A city account lives on two ledgers at once. The base ledger is canonical but
slow. While the account is delegated, the rollup holds the live copy and the
base copy is frozen under the delegation program. The client needs a cached
view of each, kept fresh without polling.

How It Works
------------
- Attaching an authority derives the account address, reads the base copy,
  derives the delegation status and subscribes to base changes.
- While delegated, the rollup copy is read and subscribed to as well.
- Every push and every explicit fetch is funneled through `merge_view`.
- Every base push re-derives the delegation status from the pushed owner.
- Leaving DELEGATED drops the rollup subscription and clears the rollup view.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from city_sync import metrics
from city_sync.codec import CityAccount, decode_account
from city_sync.delegation import DelegationStateMachine, DelegationStatus
from city_sync.errors import AccountDecodeError, PreconditionError
from city_sync.keys import CITY_PROGRAM_ID, Pubkey, derive_city_address
from city_sync.ledger import (
    AccountChangeCallback,
    AccountInfo,
    AccountNotFoundError,
    LedgerConnection,
    LedgerError,
    LedgerKind,
)

from .views import LedgerView, ViewSource, merge_view

logger = logging.getLogger(__name__)

ViewListener = Callable[[LedgerKind, LedgerView | None], None]
"""Called with the ledger and its new view whenever a cached view changes."""


@dataclass(slots=True)
class DualLedgerAccountSync:
    """
    Owner of the base and rollup views of one city account.

    The views are the only mutable shared state in the client. Nothing but
    subscription callbacks and fetches writes them.
    """

    base: LedgerConnection
    """Connection to the base ledger."""

    rollup: LedgerConnection
    """Connection to the rollup."""

    program_id: Pubkey = field(default=CITY_PROGRAM_ID)
    """Program the city account address is derived under."""

    delegation: DelegationStateMachine = field(default_factory=DelegationStateMachine)
    """Delegation status of the attached account."""

    _address: Pubkey | None = field(default=None)
    """Address of the attached city account."""

    _views: dict[LedgerKind, LedgerView | None] = field(
        default_factory=lambda: {LedgerKind.BASE: None, LedgerKind.ROLLUP: None}
    )
    """Cached view per ledger."""

    _subscriptions: dict[LedgerKind, int] = field(default_factory=dict)
    """Live subscription id per ledger. At most one each."""

    _listeners: list[ViewListener] = field(default_factory=list)
    """View change listeners."""

    _refresh_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    """Serializes delegation refreshes so subscriptions are never doubled."""

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def address(self) -> Pubkey | None:
        """The attached city account address."""
        return self._address

    @property
    def status(self) -> DelegationStatus:
        """Current delegation status."""
        return self.delegation.status

    @property
    def base_view(self) -> LedgerView | None:
        """Cached base-ledger view."""
        return self._views[LedgerKind.BASE]

    @property
    def rollup_view(self) -> LedgerView | None:
        """Cached rollup view. Only meaningful while delegated."""
        return self._views[LedgerKind.ROLLUP]

    def view(self, kind: LedgerKind) -> LedgerView | None:
        """Cached view for a ledger."""
        return self._views[kind]

    def current_account(self) -> CityAccount | None:
        """The account the player should see: rollup while delegated, else base."""
        rollup = self.rollup_view
        if self.delegation.is_delegated and rollup is not None:
            return rollup.account
        base = self.base_view
        return base.account if base is not None else None

    def is_subscribed(self, kind: LedgerKind) -> bool:
        """Whether a subscription is live on a ledger."""
        return kind in self._subscriptions

    def on_view_change(self, listener: ViewListener) -> None:
        """Register a listener for view changes."""
        self._listeners.append(listener)

    def connection(self, kind: LedgerKind) -> LedgerConnection:
        """The connection for a ledger."""
        return self.base if kind is LedgerKind.BASE else self.rollup

    def _require_address(self) -> Pubkey:
        """Return the attached address or fail before any network activity."""
        if self._address is None:
            raise PreconditionError("No authority attached")
        return self._address

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def attach(self, authority: Pubkey) -> None:
        """
        Start tracking the city account of an authority.

        Re-attaching the same authority is a no-op.
        """
        address = derive_city_address(authority, self.program_id)
        if address == self._address:
            return
        if self._address is not None:
            await self.detach()

        self._address = address
        logger.info("Tracking city account %s for %s", address, authority)

        await self.fetch_base()
        await self.refresh_delegation()
        await self.subscribe_base()

    async def detach(self) -> None:
        """Tear down both subscriptions and clear both views."""
        for kind in list(self._subscriptions):
            await self._unsubscribe(kind)
        self.clear_views()
        self.delegation.reset()
        if self._address is not None:
            logger.info("Stopped tracking city account %s", self._address)
        self._address = None

    def clear_views(self) -> None:
        """Drop both cached views."""
        for kind in (LedgerKind.BASE, LedgerKind.ROLLUP):
            self._set_view(kind, None)

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    async def fetch_base(self) -> CityAccount | None:
        """
        Read and decode the base copy.

        A missing account means "no account yet": the base view is cleared
        and None is returned. Transport errors propagate.
        """
        return await self.fetch(LedgerKind.BASE)

    async def fetch_rollup(self) -> CityAccount | None:
        """Read and decode the rollup copy."""
        return await self.fetch(LedgerKind.ROLLUP)

    async def fetch(self, kind: LedgerKind) -> CityAccount | None:
        """
        Point read on one ledger, merged into its view.

        Returns:
            The account now cached for that ledger, or None.
        """
        address = self._require_address()
        try:
            info = await self.connection(kind).get_account_info(address)
        except AccountNotFoundError:
            if kind is LedgerKind.BASE:
                logger.debug("City account %s not found on base ledger", address)
                self._set_view(kind, None)
                return None
            # The rollup clones delegated accounts lazily; absence there says
            # nothing about the base copy, so the cached view is kept.
            logger.debug("City account %s not yet present on rollup", address)
            view = self.rollup_view
            return view.account if view is not None else None

        return self._ingest(kind, info, ViewSource.FETCH)

    def _ingest(self, kind: LedgerKind, info: AccountInfo, source: ViewSource) -> CityAccount | None:
        """Decode raw account data and merge it into a view."""
        current = self._views[kind]
        try:
            account = decode_account(CityAccount, info.data)
        except AccountDecodeError as exc:
            metrics.decode_failures.labels(ledger=kind.value).inc()
            logger.warning("Keeping previous %s view: %s", kind.value, exc)
            return current.account if current is not None else None

        merged = merge_view(current, LedgerView(account=account, ledger=kind, source=source))
        if merged is current:
            logger.debug(
                "Ignoring %s %s read at %d (cached %d)",
                kind.value,
                source.value,
                int(account.last_updated),
                current.last_updated if current is not None else -1,
            )
        else:
            self._set_view(kind, merged)
        return merged.account

    def _set_view(self, kind: LedgerKind, view: LedgerView | None) -> None:
        """Replace a view and notify listeners."""
        if self._views[kind] is view:
            return
        self._views[kind] = view
        for listener in list(self._listeners):
            listener(kind, view)

    # -------------------------------------------------------------------------
    # Delegation
    # -------------------------------------------------------------------------

    async def _probe_owner(self) -> Pubkey | None:
        """Read the base-ledger owner of the account (None if absent)."""
        address = self._require_address()
        try:
            info = await self.base.get_account_info(address)
        except AccountNotFoundError:
            return None
        return info.owner

    async def refresh_delegation(
        self, owner: Pubkey | None = None, *, probe: bool = True
    ) -> DelegationStatus:
        """
        Re-derive the delegation status and align the rollup side with it.

        Args:
            owner: A base owner already known from a notification.
            probe: Whether to read the owner from the base ledger. When False,
                `owner` is used as-is.

        Returns:
            The settled status.
        """
        async with self._refresh_lock:
            if probe:
                await self.delegation.recompute(self._probe_owner)
            else:

                async def known_owner() -> Pubkey | None:
                    return owner

                await self.delegation.recompute(known_owner)

            if self.delegation.is_delegated:
                try:
                    await self.fetch_rollup()
                except LedgerError as exc:
                    logger.warning("Could not read city from rollup: %s", exc)
                try:
                    await self.subscribe_rollup()
                except LedgerError as exc:
                    logger.warning("Could not subscribe to rollup changes: %s", exc)
            else:
                await self.unsubscribe_rollup()
                self._set_view(LedgerKind.ROLLUP, None)

            return self.delegation.status

    async def force_undelegated(self) -> None:
        """Settle on UNDELEGATED without probing and drop the rollup side."""
        async with self._refresh_lock:
            self.delegation.force(DelegationStatus.UNDELEGATED)
            await self.unsubscribe_rollup()
            self._set_view(LedgerKind.ROLLUP, None)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def subscribe_base(self) -> None:
        """Subscribe to base changes. A live subscription is kept, not doubled."""
        await self._subscribe(LedgerKind.BASE, self._on_base_change)

    async def subscribe_rollup(self) -> None:
        """Subscribe to rollup changes. Only while delegated."""
        if not self.delegation.is_delegated:
            return
        await self._subscribe(LedgerKind.ROLLUP, self._on_rollup_change)

    async def unsubscribe_rollup(self) -> None:
        """Drop the rollup subscription if there is one."""
        await self._unsubscribe(LedgerKind.ROLLUP)

    async def _subscribe(self, kind: LedgerKind, callback: AccountChangeCallback) -> None:
        """Open a subscription unless one is already live."""
        address = self._require_address()
        if kind in self._subscriptions:
            return
        self._subscriptions[kind] = await self.connection(kind).subscribe_account(
            address, callback
        )
        logger.debug("Subscribed to %s changes of %s", kind.value, address)

    async def _unsubscribe(self, kind: LedgerKind) -> None:
        """Release a subscription. Release failures are logged, not raised."""
        subscription_id = self._subscriptions.pop(kind, None)
        if subscription_id is None:
            return
        try:
            await self.connection(kind).unsubscribe_account(subscription_id)
        except LedgerError as exc:
            logger.warning("Failed to unsubscribe from %s: %s", kind.value, exc)

    async def _on_base_change(self, info: AccountInfo) -> None:
        """Base push: merge, then re-derive delegation from the pushed owner."""
        metrics.notifications.labels(ledger=LedgerKind.BASE.value).inc()
        if self._address is None:
            return
        self._ingest(LedgerKind.BASE, info, ViewSource.SUBSCRIPTION)
        await self.refresh_delegation(info.owner, probe=False)

    async def _on_rollup_change(self, info: AccountInfo) -> None:
        """Rollup push: merge, unless delegation already ended."""
        metrics.notifications.labels(ledger=LedgerKind.ROLLUP.value).inc()
        if self._address is None or not self.delegation.is_delegated:
            logger.debug("Ignoring rollup push outside delegation")
            return
        self._ingest(LedgerKind.ROLLUP, info, ViewSource.SUBSCRIPTION)
