"""
Metrics module for observability.

Exposes metrics in Prometheus text format.
"""

from .registry import (
    REGISTRY,
    decode_failures,
    delegated,
    fallback_mutations,
    generate_metrics,
    notifications,
    submission_time,
    submissions,
)

__all__ = [
    "REGISTRY",
    "decode_failures",
    "delegated",
    "fallback_mutations",
    "generate_metrics",
    "notifications",
    "submission_time",
    "submissions",
]
