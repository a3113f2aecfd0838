"""Pushes high-risk alerts to an external webhook.

Registered as a RiskEngine score listener. An alert fires once when a
session's score crosses into the high band and re-arms after the score drops
back out of it. Delivery runs in a background thread with 1s/2s/4s retries
and never blocks or fails the scoring call.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Dict, Optional

import requests

from sentinel import config
from sentinel.fusion import RiskScore

logger = logging.getLogger(__name__)

MAX_RETRIES: int = 3
RETRY_DELAYS: tuple = (1, 2, 4)


def build_alert_payload(session_id: str, score: RiskScore) -> dict:
    top = sorted(
        ((name, amount) for name, amount in score.breakdown if amount > 0),
        key=lambda item: -item[1],
    )
    return {
        "sessionId": session_id,
        "risk": round(score.value, 2),
        "level": score.level,
        "computedAt": score.computed_at,
        "topSignals": [name for name, _ in top[:3]],
        "breakdown": {name: round(amount, 4) for name, amount in score.breakdown},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class AlertDispatcher:
    """Score listener that posts one alert per high-risk episode."""

    def __init__(self, url: Optional[str] = None, background: bool = True) -> None:
        self.url: str = config.ALERT_URL if url is None else url
        self.background = background
        self._armed: Dict[str, bool] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def __call__(self, engine, score: RiskScore) -> None:
        if not self.enabled:
            return
        session_id = engine.session_id or "engine"
        with self._lock:
            armed = self._armed.get(session_id, True)
            if score.level != "high":
                self._armed[session_id] = True
                return
            if not armed:
                return
            self._armed[session_id] = False

        payload = build_alert_payload(session_id, score)
        if self.background:
            thread = threading.Thread(
                target=self._send_with_retry, args=(session_id, payload), daemon=True
            )
            thread.start()
        else:
            self._send_with_retry(session_id, payload)

    def forget(self, session_id: str) -> None:
        with self._lock:
            self._armed.pop(session_id, None)

    def _send_with_retry(self, session_id: str, payload: dict) -> bool:
        short_id = session_id[:8]
        for attempt in range(MAX_RETRIES):
            if self._do_send(session_id, payload):
                return True
            if attempt < MAX_RETRIES - 1:
                delay = RETRY_DELAYS[attempt]
                logger.info(f"[{short_id}] Alert retry {attempt + 1} in {delay}s")
                time.sleep(delay)

        logger.error(f"[{short_id}] Alert failed after {MAX_RETRIES} attempts")
        return False

    def _do_send(self, session_id: str, payload: dict) -> bool:
        """Single POST. Returns True on 2xx."""
        short_id = session_id[:8]
        try:
            response = requests.post(self.url, json=payload, timeout=10)
        except requests.exceptions.Timeout:
            logger.error(f"[{short_id}] Alert timed out")
            return False
        except requests.exceptions.RequestException as exc:
            logger.error(f"[{short_id}] Alert network error: {exc}")
            return False

        if 200 <= response.status_code < 300:
            logger.info(f"[{short_id}] Alert accepted ({response.status_code})")
            return True
        logger.warning(
            f"[{short_id}] Alert rejected: {response.status_code} {response.text[:200]}"
        )
        return False
