"""
Account sync across the base ledger and the rollup.

Keeps one cached view per ledger, fed by change subscriptions and explicit
fetches, reconciled by a single newest-wins rule.
"""

from __future__ import annotations

__all__ = [
    "DualLedgerAccountSync",
    "LedgerView",
    "ViewListener",
    "ViewSource",
    "merge_view",
]

from .account_sync import DualLedgerAccountSync, ViewListener
from .views import LedgerView, ViewSource, merge_view
