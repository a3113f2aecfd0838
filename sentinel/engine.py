"""
Event ingestion and score query interfaces for one monitored session.

RiskEngine is the only way collaborators (capture adapters, the HTTP layer,
alerting) touch session state. Scoring is a stateless pull: callers decide
when to call compute_score(), on a timer, per event or on demand.
"""

import logging
import threading
from typing import Callable, List, Mapping, Optional, Union

from sentinel import config, fusion
from sentinel.fusion import RiskScore
from sentinel.models import (
    CounterEvent,
    CounterResetEvent,
    FlagEvent,
    NumericEvent,
    event_adapter,
)
from sentinel.registry import RegistryError, SignalRegistry

logger = logging.getLogger(__name__)

ScoreListener = Callable[["RiskEngine", RiskScore], None]

SCORE_MODES = ("latest", "mean")


class RiskEngine:
    """Wraps a SignalRegistry with ingestion and query operations."""

    def __init__(
        self,
        registry: Optional[SignalRegistry] = None,
        score_mode: Optional[str] = None,
        session_id: str = "",
    ) -> None:
        mode = (score_mode or config.SCORE_MODE).lower()
        if mode not in SCORE_MODES:
            raise ValueError(f"score_mode must be one of {SCORE_MODES}, got {mode!r}")
        self.session_id = session_id
        self.score_mode = mode
        self._registry = registry if registry is not None else SignalRegistry()
        self._lock = threading.Lock()
        self._last_score: Optional[RiskScore] = None
        self._last_level: str = "normal"
        self._listeners: List[ScoreListener] = []

    @property
    def _tag(self) -> str:
        return f"[{self.session_id[:8]}]" if self.session_id else "[engine]"

    # ==================== Ingestion ====================

    def report_numeric(self, name: str, value: float) -> bool:
        """Report a numeric sample. Non-finite samples are dropped (returns False)."""
        try:
            accepted = self._registry.report_numeric(name, value)
        except RegistryError as exc:
            logger.warning(f"{self._tag} Rejected numeric report: {exc}")
            raise
        if not accepted:
            logger.debug(f"{self._tag} Dropped non-finite sample for {name}: {value!r}")
        return accepted

    def set_flag(self, name: str, value: bool) -> None:
        try:
            self._registry.set_flag(name, value)
        except RegistryError as exc:
            logger.warning(f"{self._tag} Rejected flag update: {exc}")
            raise

    def increment_counter(self, name: str, delta: int = 1) -> int:
        try:
            return self._registry.increment_counter(name, delta)
        except RegistryError as exc:
            logger.warning(f"{self._tag} Rejected counter increment: {exc}")
            raise

    def reset_counter(self, name: str) -> None:
        try:
            self._registry.reset_counter(name)
        except RegistryError as exc:
            logger.warning(f"{self._tag} Rejected counter reset: {exc}")
            raise
        logger.info(f"{self._tag} Counter {name} reset")

    def ingest(self, event: Union[NumericEvent, FlagEvent, CounterEvent, CounterResetEvent, dict]) -> bool:
        """Dispatch one discriminated event to the registry.

        Plain dicts are validated against the event union first. Returns
        False only when a numeric sample was dropped as non-finite.
        """
        if isinstance(event, dict):
            event = event_adapter.validate_python(event)

        if isinstance(event, NumericEvent):
            return self.report_numeric(event.name, event.value)
        if isinstance(event, FlagEvent):
            self.set_flag(event.name, event.value)
            return True
        if isinstance(event, CounterEvent):
            self.increment_counter(event.name, event.delta)
            return True
        if isinstance(event, CounterResetEvent):
            self.reset_counter(event.name)
            return True
        raise TypeError(f"Unsupported event type: {type(event).__name__}")

    def reset(self) -> None:
        """Clear all signal state, e.g. at the start of a new session."""
        self._registry.reset()
        with self._lock:
            self._last_score = None
            self._last_level = "normal"
        logger.info(f"{self._tag} Engine state reset")

    # ==================== Query ====================

    def compute_score(self, latest: Optional[Mapping[str, float]] = None) -> RiskScore:
        """Fuse the current registry state into a fresh RiskScore."""
        score = fusion.compute(
            self._registry.snapshot(),
            latest=latest,
            use_latest=self.score_mode == "latest",
        )
        with self._lock:
            self._last_score = score
            previous_level, self._last_level = self._last_level, score.level
            listeners = list(self._listeners)

        if score.level != previous_level:
            if score.level == "high":
                logger.warning(f"{self._tag} High risk {score.value:.1f}%")
            elif score.level == "elevated":
                logger.info(f"{self._tag} Elevated risk {score.value:.1f}%")
            else:
                logger.info(f"{self._tag} Risk back to normal {score.value:.1f}%")

        for listener in listeners:
            try:
                listener(self, score)
            except Exception as exc:
                logger.error(f"{self._tag} Score listener failed: {exc}", exc_info=True)
        return score

    @property
    def last_score(self) -> RiskScore:
        """Most recently computed score; computes one if none exists yet."""
        with self._lock:
            score = self._last_score
        if score is None:
            score = self.compute_score()
        return score

    def explain(self) -> List[dict]:
        return [
            {"signal": name, "contribution": amount}
            for name, amount in self.last_score.breakdown
        ]

    def add_listener(self, listener: ScoreListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    # Read-only views for presentation collaborators

    def flag(self, name: str) -> bool:
        return self._registry.flag(name)

    def counter(self, name: str) -> int:
        return self._registry.counter(name)

    def deviation(self, name: str, value: Optional[float] = None) -> float:
        return self._registry.deviation(name, value)

    def latest(self, name: str) -> Optional[float]:
        return self._registry.latest(name)
