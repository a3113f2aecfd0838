"""High-risk webhook dispatch."""
import pytest
import requests

from sentinel import alerts
from sentinel.alerts import AlertDispatcher, build_alert_payload
from sentinel.engine import RiskEngine


class _FakeResponse:
    def __init__(self, status_code=200, text="ok"):
        self.status_code = status_code
        self.text = text


@pytest.fixture
def posts(monkeypatch):
    sent = []

    def fake_post(url, json=None, timeout=None):
        sent.append((url, json))
        return _FakeResponse()

    monkeypatch.setattr(alerts.requests, "post", fake_post)
    monkeypatch.setattr(alerts.time, "sleep", lambda _s: None)
    return sent


def _high_risk_engine(dispatcher):
    engine = RiskEngine(session_id="sess-0001")
    engine.add_listener(dispatcher)
    engine.set_flag("devtoolsOpen", True)
    engine.set_flag("focused", False)
    engine.increment_counter("failedAuth", 10)
    engine.increment_counter("badIp", 10)
    return engine


def test_alert_fires_once_per_high_risk_episode(posts):
    dispatcher = AlertDispatcher(url="http://alerts.test/hook", background=False)
    engine = _high_risk_engine(dispatcher)

    engine.compute_score()
    engine.compute_score()
    assert len(posts) == 1
    url, payload = posts[0]
    assert url == "http://alerts.test/hook"
    assert payload["sessionId"] == "sess-0001"
    assert payload["level"] == "high"
    assert payload["risk"] == 78.0

    engine.reset_counter("failedAuth")
    engine.compute_score()
    engine.increment_counter("failedAuth", 10)
    engine.compute_score()
    assert len(posts) == 2


def test_disabled_without_url(posts):
    dispatcher = AlertDispatcher(url="", background=False)
    assert dispatcher.enabled is False
    _high_risk_engine(dispatcher).compute_score()
    assert posts == []


def test_retries_on_failure(monkeypatch):
    attempts = []

    def flaky_post(url, json=None, timeout=None):
        attempts.append(url)
        if len(attempts) < 3:
            raise requests.exceptions.ConnectionError("down")
        return _FakeResponse(201)

    monkeypatch.setattr(alerts.requests, "post", flaky_post)
    monkeypatch.setattr(alerts.time, "sleep", lambda _s: None)
    dispatcher = AlertDispatcher(url="http://alerts.test/hook", background=False)
    assert dispatcher._send_with_retry("sess", {"risk": 90}) is True
    assert len(attempts) == 3


def test_gives_up_after_max_retries(monkeypatch):
    monkeypatch.setattr(alerts.requests, "post", lambda *a, **k: _FakeResponse(500, "err"))
    monkeypatch.setattr(alerts.time, "sleep", lambda _s: None)
    dispatcher = AlertDispatcher(url="http://alerts.test/hook", background=False)
    assert dispatcher._send_with_retry("sess", {"risk": 90}) is False


def test_forget_rearms_session(posts):
    dispatcher = AlertDispatcher(url="http://alerts.test/hook", background=False)
    engine = _high_risk_engine(dispatcher)
    engine.compute_score()
    dispatcher.forget("sess-0001")
    engine.compute_score()
    assert len(posts) == 2


def test_payload_lists_top_signals():
    engine = RiskEngine()
    engine.set_flag("devtoolsOpen", True)
    engine.increment_counter("failedAuth", 10)
    engine.increment_counter("badIp", 1)
    payload = build_alert_payload("s1", engine.compute_score())
    assert payload["topSignals"] == ["failedAuth", "devtoolsOpen", "badIp"]
    assert payload["breakdown"]["devtoolsOpen"] == 22.0
