"""
Name: Admin Endpoint Tests

Responsibilities:
  - Admin-only access (401 anonymous, 403 regular users)
  - Dashboard stats, listings with pagination and search
  - User edit (points ledger), role, ban, delete and self-protection
  - Security metrics/report, recovery and backups endpoints
  - Audit trail files written for critical operations
"""

import json
from uuid import uuid4

import pytest

from moostyle.container import (
    get_audit_repository,
    get_point_transaction_repository,
    get_user_repository,
)
from moostyle.identity.users import UserRole

pytestmark = pytest.mark.unit


@pytest.fixture
def admin(user_factory):
    return user_factory.create(role=UserRole.ADMIN, username="boss")


@pytest.fixture
def admin_headers(admin, auth_headers):
    return auth_headers(admin)


def test_anonymous_and_regular_users_are_rejected(client, user_factory, auth_headers):
    user = user_factory.create()

    assert client.get("/api/admin/stats").status_code == 401
    response = client.get("/api/admin/stats", headers=auth_headers(user))
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


def test_owner_is_admin_too(client, user_factory, auth_headers):
    owner = user_factory.create(role=UserRole.OWNER)
    assert client.get("/api/admin/stats", headers=auth_headers(owner)).status_code == 200


def test_dashboard_stats(client, admin_headers, user_factory):
    user_factory.create(points=90)

    stats = client.get("/api/admin/stats", headers=admin_headers).json()["stats"]

    assert stats["total_users"] == 2
    assert stats["active_users"] == 2
    assert stats["banned_users"] == 0
    assert stats["total_carts"] == 2
    assert stats["total_points"] == 90
    assert stats["membership_distribution"]["Gold"] == 1
    assert stats["role_counts"]["admin"] == 1


def test_list_users_with_search_and_pagination(client, admin_headers, user_factory):
    for n in range(3):
        user_factory.create(username=f"cow_{n}")

    page = client.get("/api/admin/users?page=1&limit=2", headers=admin_headers).json()
    assert page["pagination"] == {"page": 1, "limit": 2, "total": 4, "pages": 2}
    assert len(page["users"]) == 2

    found = client.get("/api/admin/users?search=COW_1", headers=admin_headers).json()
    assert [u["username"] for u in found["users"]] == ["cow_1"]


def test_list_carts_and_transactions(client, admin_headers):
    carts = client.get("/api/admin/carts", headers=admin_headers).json()
    assert carts["pagination"]["total"] == 1

    txs = client.get("/api/admin/point-transactions", headers=admin_headers).json()
    assert txs["transactions"] == []


def test_update_points_creates_admin_transaction(client, admin_headers, user_factory):
    user = user_factory.create()

    response = client.put(
        f"/api/admin/users/{user.id}", json={"points": 250}, headers=admin_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["points"] == 250
    assert body["user"]["membership_level"] == "Diamond"
    assert body["transaction"]["type"] == "bonus"
    assert body["transaction"]["source"] == "admin"
    assert get_point_transaction_repository().count_for_user(user.id) == 1
    actions = [e.action for e in get_audit_repository().list_events()]
    assert "admin.user.update" in actions


def test_update_rejects_negative_points(client, admin_headers, user_factory):
    user = user_factory.create()
    response = client.put(
        f"/api/admin/users/{user.id}", json={"points": -5}, headers=admin_headers
    )
    assert response.status_code == 422


def test_update_unknown_user(client, admin_headers):
    response = client.put(
        f"/api/admin/users/{uuid4()}", json={"name": "x"}, headers=admin_headers
    )
    assert response.status_code == 404


def test_role_change_and_self_demotion(client, admin, admin_headers, user_factory):
    user = user_factory.create()

    promoted = client.put(
        f"/api/admin/users/{user.id}/role", json={"role": "admin"}, headers=admin_headers
    )
    assert promoted.json()["user"]["role"] == "admin"

    demote_self = client.put(
        f"/api/admin/users/{admin.id}/role", json={"role": "user"}, headers=admin_headers
    )
    assert demote_self.status_code == 403


def test_ban_blocks_user_and_writes_critical_audit(
    client, admin_headers, user_factory, auth_headers, isolated_env
):
    user = user_factory.create()
    user_headers = auth_headers(user)

    banned = client.put(
        f"/api/admin/users/{user.id}/ban",
        json={"ban": True, "ban_reason": "Cheating"},
        headers=admin_headers,
    )
    assert banned.status_code == 200
    assert banned.json()["user"]["is_active"] is False

    blocked = client.get("/api/cart", headers=user_headers)
    assert blocked.status_code == 403
    assert blocked.json()["ban_reason"] == "Cheating"

    critical = isolated_env / "logs" / "audit" / "critical-operations.log"
    record = json.loads(critical.read_text(encoding="utf-8").splitlines()[-1])
    assert record["operation"] == "User Ban"
    assert record["severity"] == "CRITICAL"

    unbanned = client.put(
        f"/api/admin/users/{user.id}/ban", json={"ban": False}, headers=admin_headers
    )
    assert unbanned.json()["user"]["ban_reason"] is None
    assert client.get("/api/cart", headers=user_headers).status_code == 200


def test_admin_cannot_ban_or_delete_self(client, admin, admin_headers):
    ban = client.put(
        f"/api/admin/users/{admin.id}/ban", json={"ban": True}, headers=admin_headers
    )
    delete = client.delete(f"/api/admin/users/{admin.id}", headers=admin_headers)

    assert ban.status_code == 403
    assert delete.status_code == 403


def test_delete_user(client, admin_headers, user_factory):
    user = user_factory.create()

    response = client.delete(f"/api/admin/users/{user.id}", headers=admin_headers)

    assert response.status_code == 200
    assert get_user_repository().get_by_id(user.id) is None
    again = client.delete(f"/api/admin/users/{user.id}", headers=admin_headers)
    assert again.status_code == 404


def test_security_metrics_and_report(client, admin_headers):
    metrics = client.get("/api/admin/security/metrics", headers=admin_headers)
    assert metrics.status_code == 200
    assert "overview" in metrics.json()["data"]

    report = client.get("/api/admin/security/report?period=weekly", headers=admin_headers)
    assert report.json()["data"]["period"] == "weekly"

    invalid = client.get("/api/admin/security/report?period=yearly", headers=admin_headers)
    assert invalid.status_code == 422


def test_recovery_endpoints(client, admin_headers):
    procedures = client.get("/api/admin/recovery/procedures", headers=admin_headers)
    assert "database" in procedures.json()["data"]

    executed = client.post(
        "/api/admin/recovery/execute",
        json={"category": "server", "procedure": "disk_space"},
        headers=admin_headers,
    )
    assert executed.status_code == 200
    body = executed.json()
    assert body["success"] is True
    assert body["data"]["steps_completed"] == 6

    unknown = client.post(
        "/api/admin/recovery/execute",
        json={"category": "server", "procedure": "nope"},
        headers=admin_headers,
    )
    assert unknown.status_code == 404

    history = client.get("/api/admin/recovery/history", headers=admin_headers)
    assert len(history.json()["data"]) == 1

    tested = client.post("/api/admin/recovery/test", headers=admin_headers)
    assert tested.json()["data"]["data"]["data_loss"]["available"] is True

    report = client.get("/api/admin/recovery/report", headers=admin_headers)
    assert report.json()["data"]["total_runs"] == 1


def test_backup_endpoints(client, admin_headers):
    created = client.post(
        "/api/admin/backups", json={"type": "user_data"}, headers=admin_headers
    )
    assert created.status_code == 201
    filename = created.json()["data"]["filename"]

    status = client.get("/api/admin/backups/status", headers=admin_headers).json()
    assert status["data"]["total_backups"] == 1

    verified = client.get(
        f"/api/admin/backups/{filename}/verify", headers=admin_headers
    ).json()
    assert verified["success"] is True
    assert verified["data"]["valid"] is True

    missing = client.get(
        "/api/admin/backups/nope.encrypted/verify", headers=admin_headers
    ).json()
    assert missing["success"] is False


def test_backup_rejects_unknown_type(client, admin_headers):
    response = client.post(
        "/api/admin/backups", json={"type": "everything"}, headers=admin_headers
    )
    assert response.status_code == 422


def test_admin_health(client, admin_headers):
    assert client.get("/api/admin/health", headers=admin_headers).json()["status"] == "healthy"
    db = client.get("/api/admin/health/database", headers=admin_headers).json()
    assert db["counts"]["users"] == 1
