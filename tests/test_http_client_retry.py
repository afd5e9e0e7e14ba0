from __future__ import annotations

import json

import pytest
import requests

from retryop.domain.config.http import HttpSettings
from retryop.domain.config.retry import RetrySettings
from retryop.domain.errors import RetryFailure
from retryop.infrastructure.http_client import get_with_retries, should_retry_status


def _make_response(status_code: int, payload: dict | None = None) -> requests.Response:
    r = requests.Response()
    r.status_code = status_code
    r.url = "http://example.test"
    if payload is None:
        payload = {}
    r._content = json.dumps(payload).encode("utf-8")  # type: ignore[attr-defined]
    r.headers["Content-Type"] = "application/json"
    return r


@pytest.fixture
def naps(monkeypatch):
    sleep_calls = []
    monkeypatch.setattr("tenacity.nap.sleep", sleep_calls.append)
    return sleep_calls


def test_get_retries_on_5xx(monkeypatch, naps):
    calls = {"n": 0}

    def fake_get(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            return _make_response(500, {"error": "boom"})
        return _make_response(200, {"ok": True})

    monkeypatch.setattr(requests, "get", fake_get)

    resp = get_with_retries(
        "http://example.test",
        retry=RetrySettings(max_attempts=3, delay=100, unit="milliseconds"),
    )
    assert resp.status_code == 200
    assert calls["n"] == 2
    assert naps == [pytest.approx(0.1)]


def test_get_returns_last_response_when_statuses_keep_failing(monkeypatch, naps):
    calls = {"n": 0}

    def fake_get(*args, **kwargs):
        calls["n"] += 1
        return _make_response(503)

    monkeypatch.setattr(requests, "get", fake_get)

    resp = get_with_retries("http://example.test", retry=RetrySettings(max_attempts=3))
    assert resp.status_code == 503
    assert calls["n"] == 3


def test_get_does_not_retry_on_401(monkeypatch, naps):
    calls = {"n": 0}

    def fake_get(*args, **kwargs):
        calls["n"] += 1
        return _make_response(401, {"error": "unauthorized"})

    monkeypatch.setattr(requests, "get", fake_get)

    resp = get_with_retries(
        "http://example.test",
        retry=RetrySettings(max_attempts=3),
        http=HttpSettings(retry_statuses=[401, 500]),
    )
    assert resp.status_code == 401
    assert calls["n"] == 1


def test_get_retries_network_errors_then_fails(monkeypatch, naps):
    errors = []

    def fake_get(*args, **kwargs):
        err = requests.exceptions.ConnectionError("refused")
        errors.append(err)
        raise err

    monkeypatch.setattr(requests, "get", fake_get)

    with pytest.raises(RetryFailure) as exc_info:
        get_with_retries("http://example.test", retry=RetrySettings(max_attempts=2))
    assert len(errors) == 2
    assert exc_info.value.cause is errors[-1]


def test_get_does_not_retry_unexpected_errors(monkeypatch, naps):
    calls = {"n": 0}

    def fake_get(*args, **kwargs):
        calls["n"] += 1
        raise requests.exceptions.InvalidURL("bad url")

    monkeypatch.setattr(requests, "get", fake_get)

    with pytest.raises(RetryFailure):
        get_with_retries("http://example.test", retry=RetrySettings(max_attempts=3))
    assert calls["n"] == 1


def test_get_uses_configured_retry_on(monkeypatch, naps):
    calls = {"n": 0}

    def fake_get(*args, **kwargs):
        calls["n"] += 1
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(requests, "get", fake_get)

    with pytest.raises(RetryFailure):
        get_with_retries(
            "http://example.test",
            retry=RetrySettings(max_attempts=3, retry_on=["requests.exceptions.ReadTimeout"]),
        )
    assert calls["n"] == 1


def test_get_passes_headers_and_timeout(monkeypatch, naps):
    seen = {}

    def fake_get(url, headers=None, timeout=None):
        seen.update(url=url, headers=headers, timeout=timeout)
        return _make_response(200)

    monkeypatch.setattr(requests, "get", fake_get)
    attempts = []

    get_with_retries(
        "http://example.test/x",
        retry=RetrySettings(max_attempts=1),
        http=HttpSettings(timeout=3, headers={"Accept": "application/json", "X-A": "1"}),
        headers={"X-A": "2"},
        listener=attempts.append,
    )
    assert seen == {
        "url": "http://example.test/x",
        "headers": {"Accept": "application/json", "X-A": "2"},
        "timeout": 3,
    }
    assert attempts == [0]


@pytest.mark.parametrize(
    "status, expected",
    [(None, False), (200, False), (401, False), (403, False), (404, False), (429, True), (503, True)],
)
def test_should_retry_status(status, expected):
    assert should_retry_status(status, [401, 403, 429, 500, 503]) is expected
