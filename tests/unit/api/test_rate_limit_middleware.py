"""
Name: Rate Limit Middleware Tests

Responsibilities:
  - Auth policy blocks the sixth attempt with 429 + Retry-After
  - x-ratelimit-* headers on allowed responses
  - Health endpoints are never limited
"""

import pytest

from moostyle.application.security import get_security_metrics
from moostyle.crosscutting.config import get_settings
from moostyle.crosscutting.rate_limit import reset_rate_limiter

pytestmark = pytest.mark.unit


@pytest.fixture
def rate_limited(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "true")
    monkeypatch.setenv("AUTH_RATE_LIMIT", "5")
    get_settings.cache_clear()
    reset_rate_limiter()
    yield
    reset_rate_limiter()


def _login(client):
    return client.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": "Wrong123"}
    )


def test_auth_policy_blocks_after_limit(client, rate_limited):
    responses = [_login(client) for _ in range(5)]
    assert all(r.status_code == 401 for r in responses)
    assert responses[0].headers["x-ratelimit-limit"] == "5"
    assert responses[-1].headers["x-ratelimit-remaining"] == "0"

    blocked = _login(client)

    assert blocked.status_code == 429
    assert blocked.json()["code"] == "RATE_LIMITED"
    assert int(blocked.headers["retry-after"]) > 0
    assert blocked.headers["x-ratelimit-remaining"] == "0"


def test_blocked_request_is_recorded_as_rapid_requests(client, rate_limited, isolated_env):
    for _ in range(6):
        _login(client)

    log = isolated_env / "logs" / "metrics" / "suspicious-activities.log"
    assert "RAPID_REQUESTS" in log.read_text(encoding="utf-8")


def test_health_is_exempt(client, rate_limited):
    for _ in range(10):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert "x-ratelimit-limit" not in response.headers


def test_disabled_by_default(client):
    for _ in range(7):
        assert _login(client).status_code == 401
    assert get_security_metrics().suspicious_activities == 0
