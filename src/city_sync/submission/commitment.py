"""
Resolution of base-layer commitment signatures.

A commit on the rollup only schedules the flush. The rollup then runs a
follow-up transaction that sends the commit to the base ledger. Both steps
leave their signatures in the program logs::

    commit tx logs:     "ScheduledCommitSent signature: <rollup follow-up>"
    follow-up tx logs:  "ScheduledCommitSent signature[0]: <base commit>"
"""

from __future__ import annotations

import logging
import re
from typing import Final

from city_sync.ledger import LedgerConnection

logger = logging.getLogger(__name__)

SCHEDULED_COMMIT_PATTERN: Final = re.compile(r"ScheduledCommitSent signature: (\w+)")
"""Log line naming the rollup transaction that sends the commit."""

BASE_COMMIT_PATTERN: Final = re.compile(r"ScheduledCommitSent signature\[0\]: (\w+)")
"""Log line naming the base-ledger transaction that received the commit."""


def find_in_logs(logs: list[str], pattern: re.Pattern[str]) -> str | None:
    """Return the first capture of a pattern across log lines."""
    for line in logs:
        match = pattern.search(line)
        if match:
            return match.group(1)
    return None


async def resolve_commitment_signature(rollup: LedgerConnection, signature: str) -> str:
    """
    Follow a commit from its rollup transaction to its base-ledger signature.

    Raises:
        LookupError: If either log line is missing.
        LedgerError: If the logs cannot be read.
    """
    scheduled = find_in_logs(await rollup.get_transaction_logs(signature), SCHEDULED_COMMIT_PATTERN)
    if scheduled is None:
        raise LookupError(f"No scheduled commit in logs of {signature}")

    committed = find_in_logs(await rollup.get_transaction_logs(scheduled), BASE_COMMIT_PATTERN)
    if committed is None:
        raise LookupError(f"No base commit signature in logs of {scheduled}")

    logger.debug("Commit %s reached base ledger as %s", signature, committed)
    return committed
