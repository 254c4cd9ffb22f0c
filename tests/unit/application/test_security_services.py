"""
Name: Security Services Tests

Responsibilities:
  - SecurityLogWriter append/tail on a temp directory
  - Suspicious request classification (UA / URL)
  - SecurityMetrics counters, threat level and report
  - AuditTrail redaction and file layout
"""

import json
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from starlette.requests import Request

from moostyle.application.security.audit_trail import (
    REDACTED,
    AuditTrail,
    operation_slug,
    sanitize_request_data,
)
from moostyle.application.security.log_files import SecurityLogWriter
from moostyle.application.security.security_metrics import (
    SecurityMetrics,
    error_type_for,
    severity_for,
)
from moostyle.application.security.suspicious import detect_suspicious_activity
from moostyle.identity.users import User, UserRole

pytestmark = pytest.mark.unit

_NOON = datetime(2026, 3, 10, 12, 30, tzinfo=timezone.utc)


def _read_lines(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def _request(**overrides) -> Request:
    scope = {
        "type": "http",
        "method": "PUT",
        "path": "/api/admin/users/42/ban",
        "headers": [(b"user-agent", b"pytest-agent")],
        "query_string": b"token=abc&page=2",
        "client": ("10.1.2.3", 5555),
        "path_params": {"user_id": "42"},
    }
    scope.update(overrides)
    return Request(scope)


# ---------------------------------------------------------------------------
# SecurityLogWriter
# ---------------------------------------------------------------------------


def test_writer_appends_json_lines_and_creates_dirs(tmp_path):
    writer = SecurityLogWriter(tmp_path / "logs")

    assert writer.append("metrics/x.log", {"n": 1}) is True
    writer.append("metrics/x.log", {"n": 2})

    assert _read_lines(tmp_path / "logs" / "metrics" / "x.log") == [{"n": 1}, {"n": 2}]


def test_writer_tail_skips_corrupt_lines(tmp_path):
    writer = SecurityLogWriter(tmp_path)
    for n in range(5):
        writer.append("a.log", {"n": n})
    with (tmp_path / "a.log").open("a", encoding="utf-8") as fh:
        fh.write("not json\n")

    tail = writer.tail("a.log", limit=3)

    assert [r["n"] for r in tail] == [3, 4]
    assert writer.tail("missing.log") == []
    assert [p.name for p in writer.list_logs()] == ["a.log"]


# ---------------------------------------------------------------------------
# Suspicious detection
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "user_agent,url,expected",
    [
        ("Mozilla/5.0", "/api/cart?id=1' OR '1'='1", "SQL_INJECTION"),
        ("Mozilla/5.0", "/api/search?q=<script>alert(1)</script>", "XSS_ATTEMPT"),
        ("sqlmap/1.7", "/api/cart", "SUSPICIOUS_USER_AGENT"),
        ("Mozilla/5.0", "/api/exploit/test", "UNUSUAL_PATTERN"),
    ],
)
def test_detects_suspicious_requests(user_agent, url, expected):
    match = detect_suspicious_activity(user_agent, url)
    assert match is not None
    assert match.activity_type == expected


def test_normal_request_is_not_flagged():
    assert detect_suspicious_activity("Mozilla/5.0", "/api/cart") is None
    assert detect_suspicious_activity(None, None) is None


# ---------------------------------------------------------------------------
# SecurityMetrics
# ---------------------------------------------------------------------------


def test_severity_and_error_type_mapping():
    assert severity_for("SQL_INJECTION") == "HIGH"
    assert severity_for("RAPID_REQUESTS") == "MEDIUM"
    assert severity_for("SOMETHING_ELSE") == "LOW"
    assert error_type_for(503) == "SERVER_ERROR"
    assert error_type_for(404) == "CLIENT_ERROR"
    assert error_type_for(200) == "SUCCESS"


def test_metrics_counters_and_hourly_buckets(tmp_path):
    metrics = SecurityMetrics(SecurityLogWriter(tmp_path), clock=lambda: _NOON)

    metrics.record_request(200)
    metrics.record_request(404)
    metrics.record_request(500)
    metrics.record_user_login("u1", "1.1.1.1", True)
    metrics.record_admin_action("a1", "USER_UPDATE", {"user_id": "u1"})

    snapshot = metrics.get_security_metrics()

    assert snapshot["overview"]["total_requests"] == 3
    assert snapshot["overview"]["failed_requests"] == 2
    assert snapshot["error_breakdown"] == {"CLIENT_ERROR": 1, "SERVER_ERROR": 1}
    assert snapshot["today_stats"]["12"]["requests"] == 3
    assert snapshot["today_stats"]["12"]["logins"] == 1
    assert snapshot["success_rate"] == pytest.approx(33.33)
    assert (tmp_path / "metrics" / "user-logins.log").exists()
    assert _read_lines(tmp_path / "metrics" / "admin-actions.log")[0]["action"] == "USER_UPDATE"


def test_threat_level_and_recommendations(tmp_path):
    metrics = SecurityMetrics(SecurityLogWriter(tmp_path), clock=lambda: _NOON)
    assert metrics.threat_level() == "MINIMAL"
    assert metrics.success_rate() == 100.0

    for _ in range(20):
        metrics.record_request(200)
    for _ in range(11):
        assert metrics.record_suspicious_activity("XSS_ATTEMPT", {"ip": "x"}) == "HIGH"

    assert metrics.threat_level() == "HIGH"
    report = metrics.generate_security_report("weekly")
    assert report["period"] == "weekly"
    assert report["summary"]["suspicious_activities"] == 11
    assert any("suspicious" in rec for rec in report["recommendations"])
    assert len(_read_lines(tmp_path / "metrics" / "suspicious-activities.log")) == 11


def test_block_ip_is_tracked_once(tmp_path):
    metrics = SecurityMetrics(SecurityLogWriter(tmp_path), clock=lambda: _NOON)
    metrics.block_ip("9.9.9.9", "abuse")
    metrics.block_ip("9.9.9.9", "abuse")
    assert metrics.get_security_metrics()["overview"]["blocked_ips"] == 1


# ---------------------------------------------------------------------------
# AuditTrail
# ---------------------------------------------------------------------------


def test_sanitize_redacts_nested_sensitive_keys():
    data = {
        "username": "cow",
        "password": "Secret123",
        "profile": {"api_key": "k", "bio": "hi"},
        "items": [{"Auth_Token": "t"}],
    }

    clean = sanitize_request_data(data)

    assert clean["username"] == "cow"
    assert clean["password"] == REDACTED
    assert clean["profile"] == {"api_key": REDACTED, "bio": "hi"}
    assert clean["items"] == [{"Auth_Token": REDACTED}]


def test_operation_slug():
    assert operation_slug("User Ban") == "user-ban"
    assert operation_slug("  Profile  Update ") == "profile-update"
    assert operation_slug("!!!") == "operation"


def _admin() -> User:
    return User(
        id=uuid4(),
        email="boss@example.com",
        username="boss",
        password_hash="x",
        role=UserRole.ADMIN,
    )


def test_record_operation_writes_operation_and_general_logs(tmp_path):
    trail = AuditTrail(SecurityLogWriter(tmp_path))

    record = trail.record_operation(
        "Profile Update",
        request=_request(),
        user=_admin(),
        request_data={"username": "new", "password": "p"},
    )

    assert record["ip"] == "10.1.2.3"
    assert record["request_data"]["query"]["token"] == REDACTED
    assert record["request_data"]["body"]["password"] == REDACTED
    assert (tmp_path / "audit" / "profile-update.log").exists()
    assert len(_read_lines(tmp_path / "audit" / "general-audit.log")) == 1


def test_record_critical_and_failed_operations(tmp_path):
    trail = AuditTrail(SecurityLogWriter(tmp_path))

    trail.record_critical_operation("User Ban", request=_request(), user=_admin())
    trail.record_failed_operation(
        "User Ban",
        request=_request(headers=[(b"x-forwarded-for", b"8.8.8.8, 10.0.0.1")]),
        user=None,
        error="User not found",
        error_type="NOT_FOUND",
    )

    critical = _read_lines(tmp_path / "audit" / "critical-operations.log")[0]
    assert critical["severity"] == "CRITICAL"
    assert critical["details"]["admin_action"] is True

    failed = _read_lines(tmp_path / "audit" / "failed-operations.log")[0]
    assert failed["success"] is False
    assert failed["user_id"] == "anonymous"
    assert failed["ip"] == "8.8.8.8"
