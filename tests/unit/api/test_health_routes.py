"""
Name: Health Endpoint Tests

Responsibilities:
  - /api/health and subsystem checks (200 healthy, 503 when a check fails)
  - /healthz, /readyz and /metrics at the root
"""

from unittest.mock import patch

import pytest

pytestmark = pytest.mark.unit


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["environment"] == "test"
    assert body["uptime_seconds"] >= 0


@pytest.mark.parametrize("subsystem", ["database", "auth", "cart", "users"])
def test_subsystem_checks(client, subsystem):
    response = client.get(f"/api/health/{subsystem}")

    assert response.status_code == 200
    assert response.json()["subsystem"] == subsystem


def test_users_check_includes_status_counts(client, user_factory):
    user_factory.create()
    user_factory.create(is_active=False)

    counts = client.get("/api/health/users").json()["counts"]

    assert counts == {"users": 2, "active": 1, "banned": 1}


def test_database_check_returns_503_when_repository_fails(client):
    with patch(
        "moostyle.interfaces.api.http.routers.health.get_user_repository",
        side_effect=RuntimeError("db down"),
    ):
        response = client.get("/api/health/database")

    assert response.status_code == 503
    assert response.json()["code"] == "SERVICE_UNAVAILABLE"


def test_healthz_and_readyz(client):
    assert client.get("/healthz").json()["ok"] is True
    assert client.get("/readyz").status_code == 200


def test_readyz_503_when_database_is_down(client):
    with patch(
        "moostyle.api.main.database_counts", side_effect=RuntimeError("db down")
    ):
        response = client.get("/readyz")

    assert response.status_code == 503
    assert response.json()["db"] == "disconnected"


def test_metrics_endpoint(client):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "moostyle" in response.text


def test_metrics_can_require_admin(client, monkeypatch):
    from moostyle.crosscutting.config import get_settings

    monkeypatch.setenv("METRICS_REQUIRE_AUTH", "true")
    get_settings.cache_clear()

    assert client.get("/metrics").status_code == 401
