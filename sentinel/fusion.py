"""
Risk fusion policy.

Turns a registry snapshot into one bounded, explainable 0-100 score. Every
term is additive and independently capped, so no single signal can saturate
the scale and hide the others. The result is an alarm level, not a
probability.

    numeric signals   abs(z) * weight, capped per signal
    flags             flat penalty when the condition holds
    counters          count * per-event penalty, capped

Fusion holds no state and never raises.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from sentinel.registry import RegistrySnapshot


SCORE_MIN: float = 0.0
SCORE_MAX: float = 100.0

# name -> (weight per unit of abs(z), cap)
NUMERIC_WEIGHTS: Dict[str, Tuple[float, float]] = {
    "keyLatency": (6.0, 22.0),
    "mouseSpeed": (4.0, 18.0),
    "pasteFreq":  (3.0, 15.0),
    "reqRate":    (6.0, 22.0),
}

# name -> (flag value that triggers the penalty, penalty)
FLAG_PENALTIES: Dict[str, Tuple[bool, float]] = {
    "focused":      (False, 8.0),
    "devtoolsOpen": (True, 22.0),
    "badHeaders":   (True, 10.0),
}

# name -> (penalty per event, cap)
COUNTER_PENALTIES: Dict[str, Tuple[float, float]] = {
    "failedAuth": (4.0, 28.0),
    "badIp":      (3.0, 20.0),
}

HIGH_RISK_THRESHOLD: float = 70.0
ELEVATED_RISK_THRESHOLD: float = 40.0


@dataclass(frozen=True)
class RiskScore:
    """Composite score plus the per-term contributions that produced it."""
    value: float
    breakdown: Tuple[Tuple[str, float], ...]
    computed_at: int

    @property
    def level(self) -> str:
        return risk_level(self.value)

    def contribution(self, name: str) -> float:
        for term, amount in self.breakdown:
            if term == name:
                return amount
        raise KeyError(name)

    def to_dict(self) -> dict:
        return {
            "risk": round(self.value, 2),
            "level": self.level,
            "computedAt": self.computed_at,
            "breakdown": [
                {"signal": name, "contribution": round(amount, 4)}
                for name, amount in self.breakdown
            ],
        }


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def risk_level(value: float) -> str:
    if value > HIGH_RISK_THRESHOLD:
        return "high"
    if value > ELEVATED_RISK_THRESHOLD:
        return "elevated"
    return "normal"


def _scaled(z: float, weight: float, cap: float) -> float:
    if math.isnan(z):
        return 0.0
    return clamp(abs(z) * weight, 0.0, cap)


def compute(
    snapshot: RegistrySnapshot,
    latest: Optional[Mapping[str, float]] = None,
    use_latest: bool = True,
) -> RiskScore:
    """Fuse a registry snapshot into a RiskScore.

    Each numeric signal is evaluated at ``latest[name]`` when supplied, else
    at the snapshot's most recent raw sample (when ``use_latest``), else at
    the estimator's own mean. Scoring at the mean yields zero deviation, so a
    signal that was never observed contributes no risk.
    """
    latest = latest or {}
    breakdown: List[Tuple[str, float]] = []

    for name, (weight, cap) in NUMERIC_WEIGHTS.items():
        estimator = snapshot.estimators.get(name)
        if estimator is None:
            breakdown.append((name, 0.0))
            continue
        point = latest.get(name)
        if point is None and use_latest:
            point = snapshot.latest.get(name)
        if point is None or not math.isfinite(point):
            point = estimator.mean
        breakdown.append((name, _scaled(estimator.zscore(point), weight, cap)))

    for name, (trigger, penalty) in FLAG_PENALTIES.items():
        if name in snapshot.flags and snapshot.flags[name] == trigger:
            breakdown.append((name, penalty))
        else:
            breakdown.append((name, 0.0))

    for name, (per_event, cap) in COUNTER_PENALTIES.items():
        count = max(snapshot.counters.get(name, 0), 0)
        breakdown.append((name, clamp(count * per_event, 0.0, cap)))

    value = clamp(sum(amount for _, amount in breakdown), SCORE_MIN, SCORE_MAX)
    return RiskScore(
        value=value,
        breakdown=tuple(breakdown),
        computed_at=snapshot.revision,
    )
