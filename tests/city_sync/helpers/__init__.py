"""Test helpers for city_sync unit tests."""

from __future__ import annotations

from .builders import (
    SESSION_NOW,
    city_info,
    delegated_info,
    make_city,
    make_keypair,
    make_pubkey,
    make_session,
    make_session_token,
)
from .mocks import (
    FakeLedger,
    KeyOnlySigner,
    RecordingSleep,
    RejectingSigner,
    SentTransaction,
    decode_sent,
)

__all__ = [
    # Builders
    "SESSION_NOW",
    "city_info",
    "delegated_info",
    "make_city",
    "make_keypair",
    "make_pubkey",
    "make_session",
    "make_session_token",
    # Mocks
    "FakeLedger",
    "KeyOnlySigner",
    "RecordingSleep",
    "RejectingSigner",
    "SentTransaction",
    "decode_sent",
]
