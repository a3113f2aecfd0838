"""
CyberSentinel — Behavioral Risk Engine
======================================

Per-session streaming risk scoring over behavioral telemetry:
    - estimator.py : EWMA mean/variance baseline per numeric signal
    - registry.py  : Fixed-name signal, flag and counter state (thread-safe)
    - fusion.py    : Capped additive fusion into an explainable 0-100 score
    - engine.py    : Event ingestion and score query interfaces
    - sessions.py  : In-memory session store, one engine per session
    - event_log.py : Bounded, searchable event journal
    - capture.py   : Raw-input adapters (keys, pointer, paste, request rate)
    - alerts.py    : High-risk webhook dispatcher
    - auth.py      : API key check
    - models.py    : Pydantic event and response schemas
    - main.py      : FastAPI application
"""

from sentinel.engine import RiskEngine
from sentinel.estimator import AdaptiveEstimator
from sentinel.fusion import RiskScore
from sentinel.registry import (
    InvalidDelta,
    RegistryError,
    SignalRegistry,
    UnknownCounter,
    UnknownFlag,
    UnknownSignal,
)

__all__ = [
    "AdaptiveEstimator",
    "InvalidDelta",
    "RegistryError",
    "RiskEngine",
    "RiskScore",
    "SignalRegistry",
    "UnknownCounter",
    "UnknownFlag",
    "UnknownSignal",
]
