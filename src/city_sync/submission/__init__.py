"""
Transaction submission: intents, routing, signing and the local fallback.
"""

from __future__ import annotations

__all__ = [
    # Intents
    "Intent",
    "Initialize",
    "PlaceBuilding",
    "Bulldoze",
    "Delegate",
    "Commit",
    "Undelegate",
    # Routing
    "ROUTES",
    "Route",
    "route",
    # Pipeline
    "SubmissionResult",
    "TransactionSubmissionPipeline",
    "resolve_commitment_signature",
    # Fallback and notices
    "LocalFallbackModel",
    "Notice",
    "NoticeBoard",
    "NoticeKind",
]

from .commitment import resolve_commitment_signature
from .fallback import LocalFallbackModel
from .intents import Bulldoze, Commit, Delegate, Initialize, Intent, PlaceBuilding, Undelegate
from .notices import Notice, NoticeBoard, NoticeKind
from .pipeline import SubmissionResult, TransactionSubmissionPipeline
from .routing import ROUTES, Route, route
