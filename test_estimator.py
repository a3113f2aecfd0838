"""Adaptive estimator: EWMA update rule, variance floor and z-scores."""
import math
import random

import pytest

from sentinel.estimator import AdaptiveEstimator, VARIANCE_FLOOR


def test_first_observation_pins_mean_and_floors_variance():
    est = AdaptiveEstimator(0.15)
    assert est.update(42.0) is True
    assert est.mean == 42.0
    assert est.variance == VARIANCE_FLOOR
    assert est.sample_count == 1


def test_update_uses_pre_update_mean_for_variance():
    est = AdaptiveEstimator(0.5, seed=[10.0])
    est.update(20.0)
    assert est.mean == pytest.approx(15.0)
    # 0.5 * (20 - 10)^2 + 0.5 * floor
    assert est.variance == pytest.approx(50.0 + 0.5 * VARIANCE_FLOOR)


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf"), None, "abc", True])
def test_non_finite_and_non_numeric_samples_are_ignored(bad):
    est = AdaptiveEstimator(0.15, seed=[1.0, 2.0])
    before = (est.mean, est.variance, est.sample_count)
    assert est.update(bad) is False
    assert (est.mean, est.variance, est.sample_count) == before


def test_variance_never_drops_below_floor():
    rng = random.Random(7)
    est = AdaptiveEstimator(0.3)
    for _ in range(200):
        est.update(5.0)
        assert est.variance >= VARIANCE_FLOOR
    for _ in range(500):
        est.update(rng.uniform(-1e6, 1e6))
        assert est.variance >= VARIANCE_FLOOR
        assert est.variance > 0


def test_zscore_of_mean_is_zero_after_observing_the_mean():
    est = AdaptiveEstimator(0.15, seed=[50, 60, 55, 52])
    current = est.mean
    est.update(current)
    assert abs(est.zscore(current)) == pytest.approx(0.0, abs=1e-9)


def test_seeded_keystroke_baseline_flags_large_outlier():
    est = AdaptiveEstimator(0.15, seed=[50, 60, 55, 52])
    assert abs(est.zscore(52)) < 0.5
    assert abs(est.zscore(500)) > 5
    est.update(500)
    assert est.zscore(500) > 0


def test_zscore_never_divides_by_zero():
    est = AdaptiveEstimator(0.15)
    assert math.isfinite(est.zscore(1.0))
    assert est.stddev > 0


@pytest.mark.parametrize("alpha", [0.0, -0.1, 1.5])
def test_invalid_alpha_rejected(alpha):
    with pytest.raises(ValueError):
        AdaptiveEstimator(alpha)


def test_alpha_of_one_tracks_last_sample():
    est = AdaptiveEstimator(1.0, seed=[1.0, 9.0])
    assert est.mean == 9.0


def test_reset_and_copy_are_independent():
    est = AdaptiveEstimator(0.2, seed=[1, 2, 3])
    clone = est.copy()
    est.update(100)
    assert clone.mean != est.mean
    assert clone.sample_count == 3

    est.reset()
    assert est.sample_count == 0
    assert est.mean == 0.0
    assert est.variance == VARIANCE_FLOOR
