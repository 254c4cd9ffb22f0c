"""
Name: Auth Endpoint Tests

Responsibilities:
  - Register (201 + token + cart), duplicates (409), weak passwords (422)
  - Login success/failure, banned accounts (403 with ban_reason)
  - /me via bearer header and cookie; logout clears the cookie
  - Password change and notification settings
"""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from moostyle.container import get_cart_repository, get_user_repository

pytestmark = pytest.mark.unit

REGISTER_BODY = {
    "email": "Daisy@Example.com",
    "username": "daisy_cow",
    "password": "Secret123",
    "name": "Daisy",
}


def test_register_creates_user_and_cart(client):
    response = client.post("/api/auth/register", json=REGISTER_BODY)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["access_token"]
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "daisy@example.com"
    assert body["user"]["points"] == 0
    assert body["user"]["membership_level"] == "Bronze"
    assert "password_hash" not in body["user"]
    assert "access_token" in response.cookies

    user = get_user_repository().get_by_email("daisy@example.com")
    assert get_cart_repository().get_for_user(user.id) is not None


def test_register_duplicate_email_conflicts(client, user_factory):
    user_factory.create(email="daisy@example.com")

    response = client.post("/api/auth/register", json=REGISTER_BODY)

    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT"


def test_register_weak_password(client):
    response = client.post(
        "/api/auth/register", json={**REGISTER_BODY, "password": "weakpass"}
    )

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert any(e.get("field") == "password" for e in body["errors"])


def test_register_rejects_bad_username(client):
    response = client.post(
        "/api/auth/register", json={**REGISTER_BODY, "username": "no spaces!"}
    )
    assert response.status_code == 422


def test_login_ok_records_last_login(client, user_factory):
    user = user_factory.create(email="cow@example.com")

    response = client.post(
        "/api/auth/login", json={"email": "COW@example.com", "password": "Secret123"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["user"]["id"] == str(user.id)
    assert get_user_repository().get_by_id(user.id).last_login_at is not None


def test_login_wrong_password(client, user_factory):
    user_factory.create(email="cow@example.com")

    response = client.post(
        "/api/auth/login", json={"email": "cow@example.com", "password": "Wrong1234"}
    )

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


def test_login_banned_user_gets_reason(client, user_factory):
    user = user_factory.create(email="cow@example.com")
    users = get_user_repository()
    users.update(
        replace(
            user,
            is_active=False,
            ban_reason="Spam",
            banned_at=datetime.now(timezone.utc),
        )
    )

    response = client.post(
        "/api/auth/login", json={"email": "cow@example.com", "password": "Secret123"}
    )

    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "ACCOUNT_SUSPENDED"
    assert body["ban_reason"] == "Spam"
    assert body["banned_at"]


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401


def test_me_with_bearer_and_cookie(client, user_factory, auth_headers):
    user = user_factory.create()
    headers = auth_headers(user)

    by_header = client.get("/api/auth/me", headers=headers)
    assert by_header.status_code == 200
    assert by_header.json()["user"]["id"] == str(user.id)

    token = headers["Authorization"].split(" ", 1)[1]
    client.cookies.set("access_token", token)
    by_cookie = client.get("/api/auth/profile")
    assert by_cookie.status_code == 200


def test_invalid_token_is_rejected(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_logout_clears_cookie(client):
    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert "access_token=" in response.headers.get("set-cookie", "")


def test_change_password(client, user_factory, auth_headers):
    user = user_factory.create(email="cow@example.com")
    headers = auth_headers(user)

    wrong = client.post(
        "/api/auth/change-password",
        json={"current_password": "Nope1234", "new_password": "NewSecret1"},
        headers=headers,
    )
    assert wrong.status_code == 401

    ok = client.post(
        "/api/auth/change-password",
        json={"current_password": "Secret123", "new_password": "NewSecret1"},
        headers=headers,
    )
    assert ok.status_code == 200

    login = client.post(
        "/api/auth/login", json={"email": "cow@example.com", "password": "NewSecret1"}
    )
    assert login.status_code == 200


def test_notification_settings(client, user_factory, auth_headers):
    user = user_factory.create()

    response = client.put(
        "/api/auth/notification-settings",
        json={"email_notifications": False},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    assert response.json()["user"]["notification_settings"]["email_notifications"] is False
