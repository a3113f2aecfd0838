"""
Per-session signal state: one adaptive estimator per numeric signal, a set of
boolean flags and a set of monotonic counters.

The registry is pure state. It never computes risk itself; fusion reads an
immutable snapshot. Signal, flag and counter names are fixed at construction
and unknown names are rejected rather than silently created.

Thread safety:
    Every state transition (one estimator update, one flag set, one counter
    change) and every snapshot read happens under a single threading.Lock,
    so an estimator's mean and variance are never observed half-updated.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Tuple

from sentinel.estimator import AdaptiveEstimator


@dataclass(frozen=True)
class SignalSpec:
    """Decay rate and seed baseline for one numeric signal."""
    alpha: float
    seed: Tuple[float, ...] = ()


# Baselines primed so a fresh session does not start from a zero-variance state.
DEFAULT_SIGNALS: Dict[str, SignalSpec] = {
    "keyLatency": SignalSpec(0.15, (50, 60, 55, 52)),     # ms between keys
    "mouseSpeed": SignalSpec(0.15, (0.05, 0.09, 0.06)),   # px/ms
    "pasteFreq":  SignalSpec(0.2,  (0, 0, 1)),            # pastes this session
    "reqRate":    SignalSpec(0.15, (4, 6, 5)),            # requests per minute
}

DEFAULT_FLAGS: Dict[str, bool] = {
    "focused": True,
    "devtoolsOpen": False,
    "badHeaders": False,
}

DEFAULT_COUNTERS: Tuple[str, ...] = ("failedAuth", "badIp")


class RegistryError(Exception):
    """Base class for rejected registry calls."""


class UnknownSignal(RegistryError, KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown signal: {self.name!r}"


class UnknownFlag(RegistryError, KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown flag: {self.name!r}"


class UnknownCounter(RegistryError, KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown counter: {self.name!r}"


class InvalidDelta(RegistryError, ValueError):
    """Counter deltas must be non-negative integers."""


@dataclass(frozen=True)
class RegistrySnapshot:
    """Point-in-time copy of registry state handed to fusion."""
    estimators: Mapping[str, AdaptiveEstimator]
    flags: Mapping[str, bool]
    counters: Mapping[str, int]
    latest: Mapping[str, Optional[float]] = field(default_factory=dict)
    revision: int = 0


class SignalRegistry:

    def __init__(
        self,
        signals: Optional[Mapping[str, SignalSpec]] = None,
        flags: Optional[Mapping[str, bool]] = None,
        counters: Optional[Iterable[str]] = None,
    ) -> None:
        self._signal_specs: Dict[str, SignalSpec] = dict(
            DEFAULT_SIGNALS if signals is None else signals
        )
        self._flag_defaults: Dict[str, bool] = dict(
            DEFAULT_FLAGS if flags is None else flags
        )
        self._counter_names: Tuple[str, ...] = tuple(
            DEFAULT_COUNTERS if counters is None else counters
        )
        self._lock = threading.Lock()
        self._revision: int = 0
        self._init_state()

    def _init_state(self) -> None:
        self._estimators: Dict[str, AdaptiveEstimator] = {
            name: AdaptiveEstimator(spec.alpha, spec.seed)
            for name, spec in self._signal_specs.items()
        }
        self._latest: Dict[str, Optional[float]] = {
            name: None for name in self._signal_specs
        }
        self._flags: Dict[str, bool] = dict(self._flag_defaults)
        self._counters: Dict[str, int] = {name: 0 for name in self._counter_names}

    # ==================== Names ====================

    @property
    def signal_names(self) -> Tuple[str, ...]:
        return tuple(self._signal_specs)

    @property
    def flag_names(self) -> Tuple[str, ...]:
        return tuple(self._flag_defaults)

    @property
    def counter_names(self) -> Tuple[str, ...]:
        return self._counter_names

    @property
    def revision(self) -> int:
        """Number of state transitions applied so far."""
        with self._lock:
            return self._revision

    # ==================== Mutation ====================

    def report_numeric(self, name: str, value) -> bool:
        """Feed one sample to the named signal's estimator.

        Returns False if the sample was non-finite and dropped.
        """
        with self._lock:
            estimator = self._estimators.get(name)
            if estimator is None:
                raise UnknownSignal(name)
            accepted = estimator.update(value)
            if accepted:
                self._latest[name] = float(value)
                self._revision += 1
            return accepted

    def set_flag(self, name: str, value: bool) -> None:
        with self._lock:
            if name not in self._flags:
                raise UnknownFlag(name)
            self._flags[name] = bool(value)
            self._revision += 1

    def increment_counter(self, name: str, delta: int = 1) -> int:
        """Add ``delta`` to a counter and return the new value."""
        with self._lock:
            if name not in self._counters:
                raise UnknownCounter(name)
            if isinstance(delta, bool) or not isinstance(delta, int) or delta < 0:
                raise InvalidDelta(f"Counter delta must be a non-negative int, got {delta!r}")
            self._counters[name] += delta
            self._revision += 1
            return self._counters[name]

    def reset_counter(self, name: str) -> None:
        with self._lock:
            if name not in self._counters:
                raise UnknownCounter(name)
            self._counters[name] = 0
            self._revision += 1

    def reset(self) -> None:
        """Return every estimator, flag and counter to its initial state."""
        with self._lock:
            self._init_state()
            self._revision += 1

    # ==================== Read access ====================

    def deviation(self, name: str, value: Optional[float] = None) -> float:
        """Absolute z-score of ``value`` (default: latest sample, else mean)."""
        with self._lock:
            estimator = self._estimators.get(name)
            if estimator is None:
                raise UnknownSignal(name)
            if value is None:
                value = self._latest[name]
            if value is None:
                value = estimator.mean
            return abs(estimator.zscore(value))

    def latest(self, name: str) -> Optional[float]:
        with self._lock:
            if name not in self._latest:
                raise UnknownSignal(name)
            return self._latest[name]

    def flag(self, name: str) -> bool:
        with self._lock:
            if name not in self._flags:
                raise UnknownFlag(name)
            return self._flags[name]

    def counter(self, name: str) -> int:
        with self._lock:
            if name not in self._counters:
                raise UnknownCounter(name)
            return self._counters[name]

    def snapshot(self) -> RegistrySnapshot:
        with self._lock:
            return RegistrySnapshot(
                estimators={n: e.copy() for n, e in self._estimators.items()},
                flags=dict(self._flags),
                counters=dict(self._counters),
                latest=dict(self._latest),
                revision=self._revision,
            )
