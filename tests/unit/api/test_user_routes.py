"""
Name: User Endpoint Tests

Responsibilities:
  - Profile read/update (username conflicts)
  - Stats after a download
  - Points history pagination and summary
"""

import pytest

pytestmark = pytest.mark.unit


def _download(client, headers, quantity: int = 1) -> None:
    client.post(
        "/api/cart/add",
        json={"item": {"product_id": "hat", "name": "Hat"}, "quantity": quantity},
        headers=headers,
    )
    assert client.post("/api/cart/download", headers=headers).status_code == 200


def test_profile(client, user_factory, auth_headers):
    user = user_factory.create(username="daisy")

    response = client.get("/api/user/profile", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["user"]["username"] == "daisy"


def test_update_username(client, user_factory, auth_headers):
    user = user_factory.create(username="daisy")

    response = client.put(
        "/api/user/profile", json={"username": "daisy_2"}, headers=auth_headers(user)
    )

    assert response.status_code == 200
    assert response.json()["user"]["username"] == "daisy_2"


def test_update_username_conflict(client, user_factory, auth_headers):
    user_factory.create(username="taken")
    user = user_factory.create(username="daisy")

    response = client.put(
        "/api/user/profile", json={"username": "TAKEN"}, headers=auth_headers(user)
    )

    assert response.status_code == 409


def test_stats_after_download(client, user_factory, auth_headers):
    user = user_factory.create()
    headers = auth_headers(user)
    _download(client, headers, quantity=3)

    stats = client.get("/api/user/stats", headers=headers).json()["stats"]

    assert stats["total_downloads"] == 1
    assert stats["total_points"] == 6
    assert stats["membership_level"] == "Bronze"
    assert stats["points_to_next_level"] == 24
    assert stats["last_download_at"] is not None


def test_points_history_and_summary(client, user_factory, auth_headers):
    user = user_factory.create()
    headers = auth_headers(user)
    _download(client, headers, quantity=2)

    history = client.get("/api/user/points/history?page=1&limit=10", headers=headers)
    assert history.status_code == 200
    body = history.json()
    assert body["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}
    assert body["transactions"][0]["points"] == 4
    assert body["transactions"][0]["type"] == "earn"

    summary = client.get("/api/user/points/summary", headers=headers).json()["summary"]
    assert summary == {
        "total_earned": 4,
        "total_spent": 0,
        "balance": 4,
        "transaction_count": 1,
        "current_points": 4,
        "membership_level": "Bronze",
    }
