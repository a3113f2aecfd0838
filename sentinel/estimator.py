"""
Adaptive baseline for a single numeric behavioral signal.

Keeps an exponentially weighted moving mean and variance so that memory and
per-sample cost stay O(1) no matter how many events a session produces. The
decay rate ``alpha`` is a per-signal design parameter; it is not auto-tuned.
"""

import math
import sys
from typing import Iterable, Optional


# Variance never drops below this, so z-scores never divide by zero.
VARIANCE_FLOOR: float = 1e-4
# Guard applied after the square root.
STDDEV_FLOOR: float = 1e-6
# Keeps variance finite when a huge sample overflows the squared deviation.
VARIANCE_CEILING: float = sys.float_info.max


class AdaptiveEstimator:
    """EWMA mean/variance with a floored variance.

    The first accepted sample pins the mean and sets the variance to the
    floor. Later samples update the variance from the pre-update mean, then
    move the mean.
    """

    def __init__(self, alpha: float = 0.15, seed: Iterable[float] = ()) -> None:
        if not (0.0 < alpha <= 1.0):
            raise ValueError(f"alpha must be in (0, 1], got {alpha!r}")
        self.alpha: float = float(alpha)
        self.mean: float = 0.0
        self.variance: float = VARIANCE_FLOOR
        self.sample_count: int = 0
        for value in seed:
            self.update(value)

    def update(self, x) -> bool:
        """Fold one observation into the baseline.

        Non-numeric and non-finite samples are dropped. Returns True when the
        sample was accepted.
        """
        sample = _as_finite(x)
        if sample is None:
            return False

        self.sample_count += 1
        if self.sample_count == 1:
            self.mean = sample
            self.variance = VARIANCE_FLOOR
            return True

        prev_mean = self.mean
        deviation = sample - prev_mean
        self.mean = self.alpha * sample + (1.0 - self.alpha) * prev_mean
        variance = self.alpha * deviation * deviation + (1.0 - self.alpha) * self.variance
        self.variance = min(max(variance, VARIANCE_FLOOR), VARIANCE_CEILING)
        return True

    @property
    def stddev(self) -> float:
        return max(math.sqrt(max(self.variance, VARIANCE_FLOOR)), STDDEV_FLOOR)

    def zscore(self, x: float) -> float:
        """Signed number of standard deviations ``x`` lies from the mean."""
        return (x - self.mean) / self.stddev

    def reset(self) -> None:
        self.mean = 0.0
        self.variance = VARIANCE_FLOOR
        self.sample_count = 0

    def copy(self) -> "AdaptiveEstimator":
        clone = AdaptiveEstimator(self.alpha)
        clone.mean = self.mean
        clone.variance = self.variance
        clone.sample_count = self.sample_count
        return clone

    def __repr__(self) -> str:
        return (
            f"AdaptiveEstimator(alpha={self.alpha}, mean={self.mean:.4f}, "
            f"variance={self.variance:.4f}, n={self.sample_count})"
        )


def _as_finite(x) -> Optional[float]:
    if isinstance(x, bool):
        return None
    try:
        value = float(x)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value
