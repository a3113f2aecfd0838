"""
Capture-layer adapters.

Translate raw input observations (key presses, pointer moves, pastes,
incoming requests) into RiskEngine ingestion calls. Timestamps are in
milliseconds and supplied by the caller, so adapters stay deterministic.
"""

import math
from collections import deque
from typing import Deque, Optional

from sentinel.engine import RiskEngine


REQUEST_WINDOW_MS: float = 60_000.0


class KeystrokeTracker:
    """Reports inter-key latency (ms) as ``keyLatency``."""

    def __init__(self, engine: RiskEngine) -> None:
        self._engine = engine
        self._last_key_ms: Optional[float] = None

    def key_down(self, t_ms: float) -> Optional[float]:
        latency = None
        if self._last_key_ms is not None:
            latency = t_ms - self._last_key_ms
            self._engine.report_numeric("keyLatency", latency)
        self._last_key_ms = t_ms
        return latency


class PointerTracker:
    """Reports pointer speed (px/ms) as ``mouseSpeed``."""

    def __init__(self, engine: RiskEngine, x: float = 0.0, y: float = 0.0, t_ms: float = 0.0) -> None:
        self._engine = engine
        self._last = (x, y, t_ms)

    def move(self, x: float, y: float, t_ms: float) -> Optional[float]:
        last_x, last_y, last_t = self._last
        dt = t_ms - last_t
        speed = None
        if dt > 0:
            speed = math.hypot(x - last_x, y - last_y) / dt
            self._engine.report_numeric("mouseSpeed", speed)
        self._last = (x, y, t_ms)
        return speed


class PasteCounter:
    """Reports the cumulative paste count as ``pasteFreq``."""

    def __init__(self, engine: RiskEngine) -> None:
        self._engine = engine
        self.count: int = 0

    def paste(self, n: int = 1) -> int:
        self.count += n
        self._engine.report_numeric("pasteFreq", self.count)
        return self.count


class RequestRateWindow:
    """Counts requests over a trailing 60s window and reports ``reqRate``.

    Suspicious headers raise the ``badHeaders`` flag; requests from a known
    bad address bump the ``badIp`` counter.
    """

    def __init__(self, engine: RiskEngine, window_ms: float = REQUEST_WINDOW_MS) -> None:
        self._engine = engine
        self.window_ms = window_ms
        self._hits: Deque[float] = deque()

    def hit(self, t_ms: float, bad_headers: bool = False, bad_ip: bool = False) -> int:
        self._hits.append(t_ms)
        while self._hits and t_ms - self._hits[0] >= self.window_ms:
            self._hits.popleft()
        per_window = len(self._hits)

        self._engine.report_numeric("reqRate", per_window)
        if bad_headers:
            self._engine.set_flag("badHeaders", True)
        if bad_ip:
            self._engine.increment_counter("badIp")
        return per_window


def simulate_attack(
    engine: RiskEngine,
    start_ms: float = 0.0,
    requests: int = 30,
    pastes: int = 5,
    failed_auth: int = 5,
    window: Optional[RequestRateWindow] = None,
    paste_counter: Optional[PasteCounter] = None,
) -> None:
    """Drive a multi-vector intrusion burst through the ingestion interface.

    Every 5th request carries suspicious headers and every 7th comes from a
    bad address; devtools is reported open. Pass the session's own
    ``window`` and ``paste_counter`` so the burst adds to their running
    totals instead of starting from zero.
    """
    if window is None:
        window = RequestRateWindow(engine)
    if paste_counter is None:
        paste_counter = PasteCounter(engine)
    for i in range(requests):
        window.hit(start_ms + i, bad_headers=i % 5 == 0, bad_ip=i % 7 == 0)
    paste_counter.paste(pastes)
    engine.increment_counter("failedAuth", failed_auth)
    engine.set_flag("devtoolsOpen", True)
