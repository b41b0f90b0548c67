"""
Shared pytest fixtures for all city_sync tests.

Provides keys, in-memory ledgers and wired sync and pipeline instances.
"""

from __future__ import annotations

import pytest

from city_sync.keys import Keypair, Pubkey, derive_city_address
from city_sync.ledger import LedgerKind
from city_sync.session import KeypairSigner
from city_sync.submission import LocalFallbackModel, NoticeBoard, TransactionSubmissionPipeline
from city_sync.sync import DualLedgerAccountSync
from tests.city_sync.helpers import FakeLedger, RecordingSleep, make_keypair


@pytest.fixture
def wallet_keypair() -> Keypair:
    """The main wallet."""
    return make_keypair(1)


@pytest.fixture
def session_keypair() -> Keypair:
    """A short-lived session key."""
    return make_keypair(2)


@pytest.fixture
def wallet(wallet_keypair: Keypair) -> KeypairSigner:
    """Signer for the main wallet."""
    return KeypairSigner(wallet_keypair)


@pytest.fixture
def city_address(wallet_keypair: Keypair) -> Pubkey:
    """The wallet's city account address."""
    return derive_city_address(wallet_keypair.pubkey)


@pytest.fixture
def base_ledger() -> FakeLedger:
    """In-memory base ledger."""
    return FakeLedger(LedgerKind.BASE)


@pytest.fixture
def rollup_ledger() -> FakeLedger:
    """In-memory rollup."""
    return FakeLedger(LedgerKind.ROLLUP)


@pytest.fixture
def sync(base_ledger: FakeLedger, rollup_ledger: FakeLedger) -> DualLedgerAccountSync:
    """Account sync over the fake ledgers, not yet attached."""
    return DualLedgerAccountSync(base=base_ledger, rollup=rollup_ledger)


@pytest.fixture
def sleep() -> RecordingSleep:
    """Instant sleep that records settle delays."""
    return RecordingSleep()


@pytest.fixture
def pipeline(
    sync: DualLedgerAccountSync, wallet: KeypairSigner, sleep: RecordingSleep
) -> TransactionSubmissionPipeline:
    """Pipeline over the fake ledgers with the main wallet and no session."""
    return TransactionSubmissionPipeline(
        sync=sync,
        wallet=wallet,
        fallback=LocalFallbackModel(),
        notices=NoticeBoard(),
        sleep=sleep,
    )
