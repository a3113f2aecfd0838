"""Bounded in-memory journal of ingested events, searchable by substring."""

import json
import threading
import time
import uuid
from collections import deque
from typing import Any, Dict, List, Optional

from sentinel import config


QUERY_LIMIT: int = 500


class EventLog:
    """Ring buffer of event records; the oldest record is dropped past max_events."""

    def __init__(self, max_events: Optional[int] = None) -> None:
        self.max_events: int = max_events or config.EVENT_LOG_MAX
        self._events: deque = deque(maxlen=self.max_events)
        self._lock = threading.Lock()

    def push(self, domain: str, event_type: str, payload: Optional[Dict[str, Any]] = None) -> dict:
        record = {
            "id": uuid.uuid4().hex[:12],
            "ts": int(time.time() * 1000),
            "domain": domain,
            "type": event_type,
            "payload": dict(payload or {}),
        }
        with self._lock:
            self._events.append(record)
        return record

    def query(self, q: str = "") -> List[dict]:
        """Return up to the last 500 records matching ``q`` (case-insensitive)."""
        needle = (q or "").strip().lower()
        with self._lock:
            events = list(self._events)
        if needle:
            events = [e for e in events if _matches(e, needle)]
        return events[-QUERY_LIMIT:]

    def export_json(self) -> str:
        with self._lock:
            events = list(self._events)
        return json.dumps(events, indent=2, default=str)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


def _matches(record: dict, needle: str) -> bool:
    return (
        needle in record["domain"].lower()
        or needle in record["type"].lower()
        or needle in json.dumps(record["payload"], default=str).lower()
    )
