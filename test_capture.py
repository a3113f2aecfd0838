"""Capture adapters translate raw input into ingestion calls."""
import pytest

from sentinel.capture import (
    KeystrokeTracker,
    PasteCounter,
    PointerTracker,
    RequestRateWindow,
    simulate_attack,
)
from sentinel.engine import RiskEngine


def test_keystroke_latency():
    engine = RiskEngine()
    keys = KeystrokeTracker(engine)
    assert keys.key_down(1000.0) is None
    assert keys.key_down(1055.0) == pytest.approx(55.0)
    assert engine.latest("keyLatency") == pytest.approx(55.0)


def test_pointer_speed_skips_zero_dt():
    engine = RiskEngine()
    pointer = PointerTracker(engine, 0, 0, 0)
    assert pointer.move(3, 4, 10) == pytest.approx(0.5)
    assert pointer.move(6, 8, 10) is None
    assert engine.latest("mouseSpeed") == pytest.approx(0.5)


def test_paste_counter_is_cumulative():
    engine = RiskEngine()
    pastes = PasteCounter(engine)
    pastes.paste()
    assert pastes.paste(2) == 3
    assert engine.latest("pasteFreq") == 3


def test_request_window_prunes_old_hits():
    engine = RiskEngine()
    window = RequestRateWindow(engine)
    assert window.hit(0) == 1
    assert window.hit(30_000) == 2
    assert window.hit(60_000) == 2
    assert window.hit(120_001) == 1
    assert engine.latest("reqRate") == 1


def test_request_window_flags_and_counters():
    engine = RiskEngine()
    window = RequestRateWindow(engine)
    window.hit(0, bad_headers=True, bad_ip=True)
    window.hit(1, bad_ip=True)
    assert engine.flag("badHeaders") is True
    assert engine.counter("badIp") == 2


def test_simulated_attack_raises_risk():
    engine = RiskEngine(score_mode="latest")
    simulate_attack(engine)
    score = engine.compute_score()
    assert engine.counter("failedAuth") == 5
    assert engine.counter("badIp") == 5
    assert score.contribution("devtoolsOpen") == 22.0
    assert score.contribution("badHeaders") == 10.0
    assert score.contribution("failedAuth") == 20.0
    assert score.contribution("badIp") == 15.0
    assert score.contribution("pasteFreq") > 0
    assert score.value > 67.0


def test_simulated_attack_continues_session_trackers():
    engine = RiskEngine(score_mode="latest")
    pastes = PasteCounter(engine)
    window = RequestRateWindow(engine)
    pastes.paste(2)
    for t in range(3):
        window.hit(t)

    simulate_attack(engine, start_ms=10.0, requests=4, window=window, paste_counter=pastes)
    assert pastes.count == 7
    assert engine.latest("pasteFreq") == 7
    assert engine.latest("reqRate") == 7
