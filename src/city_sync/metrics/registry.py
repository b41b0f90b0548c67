"""
Metric registry using prometheus_client.

Provides pre-defined metrics for the sync layer: submissions, subscription
traffic, decode failures and the current delegation state.
"""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# A dedicated registry keeps default process metrics out of the output.
REGISTRY = CollectorRegistry()

# -----------------------------------------------------------------------------
# Submissions
# -----------------------------------------------------------------------------

submissions = Counter(
    "city_sync_submissions_total",
    "Intents submitted, by intent, target ledger and outcome",
    ["intent", "ledger", "outcome"],
    registry=REGISTRY,
)

submission_time = Histogram(
    "city_sync_submission_seconds",
    "Time from build to confirmation",
    ["ledger"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=REGISTRY,
)

fallback_mutations = Counter(
    "city_sync_fallback_mutations_total",
    "Gameplay edits applied only to the local fallback model",
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Account views
# -----------------------------------------------------------------------------

notifications = Counter(
    "city_sync_notifications_total",
    "Account change notifications received",
    ["ledger"],
    registry=REGISTRY,
)

decode_failures = Counter(
    "city_sync_decode_failures_total",
    "Account buffers that failed to decode",
    ["ledger"],
    registry=REGISTRY,
)

delegated = Gauge(
    "city_sync_delegated",
    "1 while write authority is delegated to the rollup",
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics output.

    Returns:
        Prometheus text format output as bytes.
    """
    return generate_latest(REGISTRY)
