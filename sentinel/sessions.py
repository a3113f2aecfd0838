"""Thread-safe in-memory session store.

Each monitored session owns exactly one RiskEngine and one EventLog. Nothing
is persisted; sessions idle for longer than SESSION_EXPIRY_SECONDS are purged
at most once every 10 minutes, on the next access.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta
from typing import Dict, Optional

from sentinel import config
from sentinel.engine import RiskEngine
from sentinel.event_log import EventLog

logger = logging.getLogger(__name__)


@dataclass
class Session:
    session_id: str
    engine: RiskEngine
    events: EventLog
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_activity: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def touch(self) -> None:
        self.last_activity = datetime.now(timezone.utc)

    def duration_seconds(self) -> int:
        delta = datetime.now(timezone.utc) - self.start_time
        return max(int(delta.total_seconds()), 0)


class SessionStore:
    """Creates, retrieves and expires per-session engines."""

    def __init__(
        self,
        expiry_seconds: Optional[int] = None,
        alerts=None,
        score_mode: Optional[str] = None,
    ) -> None:
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self._last_cleanup: datetime = datetime.now(timezone.utc)
        self.expiry_seconds: int = expiry_seconds or config.SESSION_EXPIRY_SECONDS
        self._alerts = alerts
        self._score_mode = score_mode

    def ensure_session(self, session_id: str) -> Session:
        """Create or retrieve the session for ``session_id``."""
        with self._lock:
            self._maybe_cleanup()

            session = self._sessions.get(session_id)
            if session is None:
                engine = RiskEngine(score_mode=self._score_mode, session_id=session_id)
                if self._alerts is not None:
                    engine.add_listener(self._alerts)
                session = Session(session_id=session_id, engine=engine, events=EventLog())
                self._sessions[session_id] = session
                logger.info(f"[{session_id[:8]}] Session started")
            else:
                session.touch()
            return session

    def get_session(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def end_session(self, session_id: str) -> bool:
        """Discard a session. Returns False if it did not exist."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        if self._alerts is not None:
            self._alerts.forget(session_id)
        logger.info(f"[{session_id[:8]}] Session ended after {session.duration_seconds()}s")
        return True

    def get_session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _maybe_cleanup(self) -> None:
        """Purge expired sessions. Called under lock; runs every 10 minutes max."""
        now = datetime.now(timezone.utc)
        if (now - self._last_cleanup) < timedelta(minutes=10):
            return

        self._last_cleanup = now
        self._purge_expired(now)

    def cleanup_expired(self, now: Optional[datetime] = None) -> int:
        """Drop sessions idle past the expiry window; returns how many."""
        with self._lock:
            return self._purge_expired(now or datetime.now(timezone.utc))

    def _purge_expired(self, now: datetime) -> int:
        threshold = now - timedelta(seconds=self.expiry_seconds)
        expired = [sid for sid, s in self._sessions.items() if s.last_activity < threshold]
        for sid in expired:
            del self._sessions[sid]
            if self._alerts is not None:
                self._alerts.forget(sid)
        if expired:
            logger.info(f"Purged {len(expired)} expired sessions")
        return len(expired)
