"""Unit tests for error_responses module."""

from moostyle.crosscutting.error_responses import (
    ErrorCode,
    ErrorDetail,
    account_suspended,
    bad_request,
    build_problem,
    conflict,
    database_error,
    forbidden,
    internal_error,
    not_found,
    payload_too_large,
    rate_limited,
    service_unavailable,
    unauthorized,
    validation_error,
)


class TestErrorFactories:
    """Test error factory functions."""

    def test_validation_error(self):
        exc = validation_error("Invalid input", [{"field": "name", "msg": "required"}])
        assert exc.status_code == 422
        assert exc.code == ErrorCode.VALIDATION_ERROR
        assert exc.errors == [{"field": "name", "msg": "required"}]

    def test_bad_request_with_domain_code(self):
        exc = bad_request("Cart is empty", ErrorCode.EMPTY_CART)
        assert exc.status_code == 400
        assert exc.code == ErrorCode.EMPTY_CART

    def test_not_found(self):
        exc = not_found("User", "user-123")
        assert exc.status_code == 404
        assert exc.code == ErrorCode.NOT_FOUND
        assert "user-123" in exc.detail

    def test_conflict(self):
        assert conflict("Email already registered").status_code == 409

    def test_unauthorized(self):
        exc = unauthorized()
        assert exc.status_code == 401
        assert exc.code == ErrorCode.UNAUTHORIZED

    def test_forbidden(self):
        exc = forbidden("Admin only")
        assert exc.status_code == 403
        assert exc.code == ErrorCode.FORBIDDEN

    def test_account_suspended_carries_ban_fields(self):
        exc = account_suspended("Suspended", ban_reason=None, banned_at="2026-01-01")
        assert exc.status_code == 403
        assert exc.code == ErrorCode.ACCOUNT_SUSPENDED
        assert exc.extra == {
            "ban_reason": "No reason provided",
            "banned_at": "2026-01-01",
        }

    def test_rate_limited(self):
        exc = rate_limited(120)
        assert exc.status_code == 429
        assert exc.code == ErrorCode.RATE_LIMITED
        assert exc.headers["Retry-After"] == "120"
        assert exc.extra["retry_after"] == 120

    def test_payload_too_large(self):
        exc = payload_too_large("1MB")
        assert exc.status_code == 413
        assert "1MB" in exc.detail

    def test_internal_error(self):
        exc = internal_error()
        assert exc.status_code == 500
        assert exc.code == ErrorCode.INTERNAL_ERROR

    def test_service_unavailable(self):
        exc = service_unavailable("database")
        assert exc.status_code == 503
        assert "database" in exc.detail

    def test_database_error(self):
        exc = database_error()
        assert exc.status_code == 503
        assert exc.code == ErrorCode.DATABASE_ERROR


class TestErrorDetail:
    """Test ErrorDetail model."""

    def test_serialization(self):
        detail = ErrorDetail(
            message="Resource not found",
            title="Not Found",
            status=404,
            detail="Resource not found",
            code=ErrorCode.NOT_FOUND,
        )
        data = detail.model_dump(exclude_none=True)
        assert data["status"] == 404
        assert data["code"] == "NOT_FOUND"
        assert data["success"] is False
        assert "errors" not in data  # excluded when None

    def test_build_problem_merges_extra(self):
        body = build_problem(
            status=429,
            code=ErrorCode.RATE_LIMITED,
            detail="Slow down",
            extra={"retry_after": 30},
        )
        assert body["message"] == body["detail"] == "Slow down"
        assert body["title"] == "Rate Limited"
        assert body["type"] == "about:blank/rate_limited"
        assert body["retry_after"] == 30
