"""
Transaction submission pipeline.

The only path by which intents reach a ledger.

Steps
-----
1. Check preconditions. Nothing touches the network if they fail.
2. Route: pick the target ledger and whether the main wallet is forced.
3. Pick the signer: the session signer for eligible intents when one is
   usable, otherwise the main wallet.
4. Build the instruction with its resolved accounts.
5. Stamp the fee payer and a fresh blockhash from the *target* ledger.
6. Sign, send, confirm on the target ledger.
7. On success, refetch the target view explicitly and run the intent's
   follow-up. On failure, raise; gameplay intents also edit the local
   fallback grid.

There is no retry. The caller may issue the same intent again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Final

from city_sync import metrics
from city_sync.codec import describe_program_error
from city_sync.errors import PreconditionError, SubmissionError
from city_sync.keys import CITY_PROGRAM_ID, DELEGATION_PROGRAM_ID, Pubkey
from city_sync.ledger import (
    Instruction,
    LedgerError,
    LedgerKind,
    Transaction,
    TransactionFailedError,
)
from city_sync.session import SessionCapability, TransactionSigner
from city_sync.sync import DualLedgerAccountSync

from . import builders
from .commitment import resolve_commitment_signature
from .fallback import LocalFallbackModel
from .intents import Bulldoze, Commit, Delegate, Initialize, Intent, PlaceBuilding, Undelegate
from .notices import NoticeBoard
from .routing import Route, route

logger = logging.getLogger(__name__)

SUCCESS_MESSAGES: Final[dict[type[Intent], str]] = {
    Initialize: "City Initialized!",
    PlaceBuilding: "Building placed successfully!",
    Bulldoze: "Bulldozed successfully!",
    Delegate: "Delegated successfully!",
    Commit: "Committed to chain!",
    Undelegate: "Undelegated!",
}
"""Success notice per intent type."""


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    """A confirmed submission."""

    intent: Intent
    ledger: LedgerKind
    signature: str
    """Transaction id on the target ledger."""

    signer: Pubkey
    """The key that signed and paid."""

    commitment_signature: str | None = None
    """Base-ledger signature of a commit, when it could be resolved."""


@dataclass(slots=True)
class TransactionSubmissionPipeline:
    """
    Routes, signs, sends and confirms intents for one account.

    Concurrent submissions for the same account are not serialized here.
    Overlapping intents risk a stale blockhash, which surfaces as an
    ordinary submission failure.
    """

    sync: DualLedgerAccountSync
    """Views and delegation status of the account."""

    wallet: TransactionSigner
    """The main wallet signer."""

    session: SessionCapability | None = None
    """The current session grant, if the session subsystem is present."""

    fallback: LocalFallbackModel = field(default_factory=LocalFallbackModel)
    """Where failed gameplay edits land."""

    notices: NoticeBoard | None = None
    """User-facing notices, if anyone is displaying them."""

    settle_delay: float = 2.0
    """Seconds to wait for the base ledger after delegate and undelegate."""

    program_id: Pubkey = CITY_PROGRAM_ID
    """The city program."""

    delegation_program: Pubkey = DELEGATION_PROGRAM_ID
    """The delegation program."""

    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)
    """Delay function (injectable for deterministic testing)."""

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def submit(self, intent: Intent) -> SubmissionResult:
        """
        Submit an intent and wait for confirmation.

        Raises:
            PreconditionError: If the intent cannot be attempted right now.
            SubmissionError: If building, signing, sending or confirming failed.
        """
        city = self._check_preconditions(intent)
        selected = route(intent, self.sync.status)
        signer, session_token = self._select_signer(intent, selected)

        if self.notices is not None:
            self.notices.show_info(self._info_message(intent, session_token is not None))

        start = time.perf_counter()
        try:
            signature = await self._send(intent, selected.ledger, city, signer, session_token)
        except Exception as exc:
            metrics.submissions.labels(
                intent=intent.name, ledger=selected.ledger.value, outcome="failure"
            ).inc()
            raise self._fail(intent, selected.ledger, exc) from exc

        metrics.submission_time.labels(ledger=selected.ledger.value).observe(
            time.perf_counter() - start
        )
        metrics.submissions.labels(
            intent=intent.name, ledger=selected.ledger.value, outcome="success"
        ).inc()
        logger.info(
            "%s confirmed on %s: %s (signed by %s)",
            intent.name,
            selected.ledger.value,
            signature,
            signer.pubkey,
        )

        await self._refetch(selected.ledger)
        try:
            commitment_signature = await self._follow_up(intent, signature)
        except LedgerError as exc:
            logger.warning("%s follow-up after %s failed: %s", intent.name, signature, exc)
            commitment_signature = None

        if intent.is_gameplay:
            self.fallback.discard(self.sync.current_account())
        if self.notices is not None:
            self.notices.show_success(SUCCESS_MESSAGES[type(intent)], signature)

        return SubmissionResult(
            intent=intent,
            ledger=selected.ledger,
            signature=signature,
            signer=signer.pubkey,
            commitment_signature=commitment_signature,
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _check_preconditions(self, intent: Intent) -> Pubkey:
        """Return the account address, or raise before any network activity."""
        city = self.sync.address
        if city is None:
            raise PreconditionError("Wallet not connected")
        if intent.requires_account and self.sync.base_view is None and self.sync.rollup_view is None:
            raise PreconditionError("City not initialized")
        if intent.requires_delegation and not self.sync.delegation.is_delegated:
            raise PreconditionError(f"{intent.name} requires a delegated city")
        return city

    def _select_signer(
        self, intent: Intent, selected: Route
    ) -> tuple[TransactionSigner, Pubkey | None]:
        """
        Pick the signer and the session token to reference.

        Returns:
            (signer, session token address or None).
        """
        if intent.session_eligible and not selected.forced_main_wallet and self.session is not None:
            session_signer = self.session.usable_signer()
            if session_signer is not None:
                logger.debug("Signing %s with session key %s", intent.name, session_signer.pubkey)
                return session_signer, self.session.token_address
        return self.wallet, None

    def _build(
        self, intent: Intent, city: Pubkey, signer: Pubkey, session_token: Pubkey | None
    ) -> Instruction:
        """Build the instruction for an intent."""
        match intent:
            case Initialize():
                return builders.initialize_city(city, signer, self.program_id)
            case PlaceBuilding(x=x, y=y, building_type=building):
                return builders.place_building(
                    city, signer, x, y, building, session_token, self.program_id
                )
            case Bulldoze(x=x, y=y):
                return builders.bulldoze(city, signer, x, y, session_token, self.program_id)
            case Delegate():
                return builders.delegate(city, signer, self.program_id, self.delegation_program)
            case Commit():
                return builders.commit(city, signer, self.program_id)
            case Undelegate():
                return builders.undelegate(city, signer, self.program_id)
        raise TypeError(f"Unsupported intent: {intent!r}")

    async def _send(
        self,
        intent: Intent,
        ledger: LedgerKind,
        city: Pubkey,
        signer: TransactionSigner,
        session_token: Pubkey | None,
    ) -> str:
        """Build, stamp, sign, send and confirm. Returns the signature."""
        connection = self.sync.connection(ledger)
        instruction = self._build(intent, city, signer.pubkey, session_token)

        transaction = Transaction(
            instructions=[instruction],
            fee_payer=signer.pubkey,
            recent_blockhash=await connection.get_latest_blockhash(),
        )
        signed = await signer.sign_transaction(transaction)

        signature = await connection.send_raw_transaction(signed.serialize())
        await connection.confirm_transaction(signature)
        return signature

    async def _refetch(self, ledger: LedgerKind) -> None:
        """Refresh the view of the ledger that just changed."""
        try:
            await self.sync.fetch(ledger)
        except LedgerError as exc:
            logger.warning("Refetch of %s view failed: %s", ledger.value, exc)

    async def _follow_up(self, intent: Intent, signature: str) -> str | None:
        """
        Run the intent-specific post-confirmation step.

        Returns:
            The base-ledger commitment signature for a commit, if resolved.
        """
        match intent:
            case Initialize():
                await self.sync.refresh_delegation()
            case Commit():
                commitment_signature = await self._resolve_commitment(signature)
                await self._refetch(LedgerKind.BASE)
                return commitment_signature
            case Delegate():
                await self.sleep(self.settle_delay)
                await self.sync.refresh_delegation()
            case Undelegate():
                # The base ledger processes the undelegation after the rollup
                # confirms it. The delay is a best guess, not a guarantee.
                await self.sleep(self.settle_delay)
                await self.sync.force_undelegated()
                await self._refetch(LedgerKind.BASE)
        return None

    async def _resolve_commitment(self, signature: str) -> str | None:
        """Best-effort lookup of the base-ledger commit signature."""
        try:
            return await resolve_commitment_signature(self.sync.rollup, signature)
        except (LookupError, LedgerError) as exc:
            logger.warning("Could not resolve commitment signature for %s: %s", signature, exc)
            return None

    def _fail(self, intent: Intent, ledger: LedgerKind, exc: Exception) -> SubmissionError:
        """Record a failed submission and build the error to raise."""
        if isinstance(exc, TransactionFailedError) and exc.custom_code is not None:
            message = describe_program_error(exc.custom_code)
        else:
            message = str(exc) or type(exc).__name__
        logger.error("%s on %s failed: %s", intent.name, ledger.value, message)

        if intent.is_gameplay and not self.fallback.diverged:
            self.fallback.seed(self.sync.current_account())
        match intent:
            case PlaceBuilding(x=x, y=y, building_type=building):
                self.fallback.place(x, y, building)
            case Bulldoze(x=x, y=y):
                self.fallback.bulldoze(x, y)

        if self.notices is not None:
            self.notices.clear_info()
            self.notices.show_error(message)
        return SubmissionError(intent, ledger, message, cause=exc)

    @staticmethod
    def _info_message(intent: Intent, with_session: bool) -> str:
        if with_session:
            return "Signing with Session Key..."
        if isinstance(intent, Delegate):
            return "Signing delegation..."
        return "Please sign transaction..."
