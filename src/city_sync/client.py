"""
Client facade.

The single surface a UI talks to. It owns the account sync, the submission
pipeline, the notice board and the local fallback grid for one wallet, and
never lets the UI reach a ledger directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

from city_sync.codec import CityAccount, TileType
from city_sync.config import ClientConfig
from city_sync.delegation import DelegationStateMachine, DelegationStatus
from city_sync.errors import CitySyncError, PreconditionError
from city_sync.ledger import LedgerConnection, LedgerKind, RpcLedgerConnection
from city_sync.session import SessionCapability, TransactionSigner
from city_sync.submission import (
    Bulldoze,
    Commit,
    Delegate,
    Initialize,
    Intent,
    LocalFallbackModel,
    NoticeBoard,
    PlaceBuilding,
    SubmissionResult,
    TransactionSubmissionPipeline,
    Undelegate,
)
from city_sync.sync import DualLedgerAccountSync

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CityClient:
    """
    One wallet's view of its city on both ledgers.

    Usable as an async context manager: entering connects, leaving
    disconnects and closes both ledger connections.
    """

    config: ClientConfig
    wallet: TransactionSigner
    base: LedgerConnection
    rollup: LedgerConnection
    session: SessionCapability | None = None

    sync: DualLedgerAccountSync = field(init=False)
    pipeline: TransactionSubmissionPipeline = field(init=False)
    notices: NoticeBoard = field(init=False)
    fallback: LocalFallbackModel = field(default_factory=LocalFallbackModel, init=False)

    is_loading: bool = field(default=False, init=False)
    """True while views are being (re)loaded."""

    is_delegating: bool = field(default=False, init=False)
    """True while a delegate, commit or undelegate is in flight."""

    last_error: str | None = field(default=None, init=False)
    """Message of the latest surfaced error."""

    def __post_init__(self) -> None:
        self.notices = NoticeBoard(duration=self.config.notice_duration)
        self.sync = DualLedgerAccountSync(
            base=self.base,
            rollup=self.rollup,
            program_id=self.config.program_id,
            delegation=DelegationStateMachine(self.config.delegation_program_id),
        )
        self.pipeline = TransactionSubmissionPipeline(
            sync=self.sync,
            wallet=self.wallet,
            session=self.session,
            fallback=self.fallback,
            notices=self.notices,
            settle_delay=self.config.settle_delay,
            program_id=self.config.program_id,
            delegation_program=self.config.delegation_program_id,
        )

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        wallet: TransactionSigner,
        session: SessionCapability | None = None,
    ) -> CityClient:
        """Build a client with JSON-RPC connections to both ledgers."""

        def connect(kind: LedgerKind, rpc_url: str, ws_url: str) -> RpcLedgerConnection:
            return RpcLedgerConnection(
                kind=kind,
                rpc_url=rpc_url,
                ws_url=ws_url,
                commitment=config.commitment,
                request_timeout=config.request_timeout,
                confirm_timeout=config.confirm_timeout,
                poll_interval=config.poll_interval,
            )

        return cls(
            config=config,
            wallet=wallet,
            base=connect(LedgerKind.BASE, config.base_rpc_url, config.base_ws_url),
            rollup=connect(LedgerKind.ROLLUP, config.rollup_rpc_url, config.rollup_ws_url),
            session=session,
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def base_account(self) -> CityAccount | None:
        """Cached base-ledger account."""
        view = self.sync.base_view
        return view.account if view is not None else None

    @property
    def rollup_account(self) -> CityAccount | None:
        """Cached rollup account."""
        view = self.sync.rollup_view
        return view.account if view is not None else None

    @property
    def current_account(self) -> CityAccount | None:
        """The account to render: rollup while delegated, else base."""
        return self.sync.current_account()

    @property
    def delegation_status(self) -> DelegationStatus:
        """Current delegation status."""
        return self.sync.status

    def snapshot(self) -> dict[str, Any]:
        """Plain-data state for renderers and the CLI."""
        current = self.current_account
        return {
            "authority": str(self.wallet.pubkey),
            "city": str(self.sync.address) if self.sync.address is not None else None,
            "delegation_status": self.delegation_status.value,
            "account": current.to_snapshot() if current is not None else None,
            "base_last_updated": _last_updated(self.base_account),
            "rollup_last_updated": _last_updated(self.rollup_account),
            "is_loading": self.is_loading,
            "is_delegating": self.is_delegating,
            "last_error": self.last_error,
            "info": self.notices.info.message if self.notices.info else None,
            "success": self.notices.success.message if self.notices.success else None,
            "success_signature": self.notices.success.signature if self.notices.success else None,
            "fallback_diverged": self.fallback.diverged,
        }

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """Attach the wallet's city account and start watching it."""
        self.is_loading = True
        try:
            await self.sync.attach(self.wallet.pubkey)
            self.fallback.seed(self.current_account)
        finally:
            self.is_loading = False

    async def disconnect(self) -> None:
        """Stop watching and drop every cached view."""
        await self.sync.detach()
        self.fallback.discard()
        self.notices.clear()
        self.last_error = None

    async def close(self) -> None:
        """Disconnect and release both ledger connections."""
        await self.disconnect()
        await self.base.close()
        await self.rollup.close()

    async def resync(self) -> None:
        """
        Reload both views from scratch.

        Drops the cached views instead of merging into them, and discards
        any local-only fallback edits.
        """
        self.is_loading = True
        try:
            self.sync.clear_views()
            await self.sync.fetch_base()
            await self.sync.refresh_delegation()
            self.fallback.discard(self.current_account)
        finally:
            self.is_loading = False

    async def __aenter__(self) -> CityClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Intents
    # -------------------------------------------------------------------------

    async def initialize_city(self) -> SubmissionResult:
        """Create the city account."""
        return await self._submit(Initialize())

    async def place_building(self, x: int, y: int, building: TileType | str) -> SubmissionResult:
        """Place a building. Accepts a tile type or a UI tool name."""
        tile = TileType.from_tool(building) if isinstance(building, str) else TileType(building)
        return await self._submit(PlaceBuilding(x, y, tile))

    async def bulldoze(self, x: int, y: int) -> SubmissionResult:
        """Clear a tile."""
        return await self._submit(Bulldoze(x, y))

    async def delegate(self) -> SubmissionResult:
        """Hand write authority to the rollup."""
        return await self._submit(Delegate())

    async def commit(self) -> SubmissionResult:
        """Flush rollup state to the base ledger."""
        return await self._submit(Commit())

    async def undelegate(self) -> SubmissionResult:
        """Return write authority to the base ledger."""
        return await self._submit(Undelegate())

    async def _submit(self, intent: Intent) -> SubmissionResult:
        """Run an intent through the pipeline and track UI-facing state."""
        self.last_error = None
        lifecycle = not intent.is_gameplay and not isinstance(intent, Initialize)
        if lifecycle:
            self.is_delegating = True
        try:
            return await self.pipeline.submit(intent)
        except CitySyncError as exc:
            self.last_error = exc.message
            if isinstance(exc, PreconditionError):
                self.notices.show_error(exc.message)
            raise
        finally:
            if lifecycle:
                self.is_delegating = False


def _last_updated(account: CityAccount | None) -> int | None:
    return int(account.last_updated) if account is not None else None
