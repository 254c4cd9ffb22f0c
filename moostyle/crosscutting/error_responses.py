"""
===============================================================================
MÓDULO: Respuestas de error estándar (RFC 7807 + envelope de la API)
===============================================================================

Objetivo
--------
Todo error HTTP sale de la API con la misma forma para que:
- el frontend pueda decidir por `code` (o simplemente por `success: false`)
- el backend pueda correlacionar por request_id / error_id
- el envelope `{success, message, ...}` de la tienda valga también en errores

Forma:
    {
      "success": false,
      "message": "<detail>",
      "type": "about:blank/<code>",
      "title": "...",
      "status": 429,
      "detail": "<detail>",
      "code": "RATE_LIMITED",
      "instance": "http://.../api/cart/download",
      "errors": [...],
      ...campos extra (ban_reason, retry_after, ...)
    }

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  AppHTTPException + handlers

Responsabilidades:
  - Definir el catálogo de códigos de error (ErrorCode)
  - Armar el payload RFC7807 (ErrorDetail) con los campos del envelope
  - Proveer factories para errores frecuentes
  - Proveer handlers FastAPI que devuelven problem+json

Colaboradores:
  - crosscutting/middleware.py (request_id)
  - api/exception_handlers.py (mapea errores internos)
===============================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorCode(str, Enum):
    # 4xx
    VALIDATION_ERROR = "VALIDATION_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    ACCOUNT_SUSPENDED = "ACCOUNT_SUSPENDED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMITED = "RATE_LIMITED"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    EMPTY_CART = "EMPTY_CART"
    INVALID_COUNT = "INVALID_COUNT"

    # 5xx
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    DATABASE_ERROR = "DATABASE_ERROR"


class ErrorDetail(BaseModel):
    """
    Modelo RFC 7807 (Problem Details) más el envelope de la API.

    Campos extra:
    - success / message: envelope compartido con las respuestas exitosas
    - code: código de error estable para clientes
    - errors: lista opcional de detalles (p.ej. [{"field": "x", "msg": "..."}])
    """

    success: bool = False
    message: str
    type: str = "about:blank"
    title: str
    status: int
    detail: str
    code: ErrorCode
    instance: str | None = None
    errors: list[dict[str, Any]] | None = None


PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"

_OPENAPI_ERROR_CONTENT = {
    PROBLEM_JSON_MEDIA_TYPE: {"schema": {"$ref": "#/components/schemas/ErrorDetail"}}
}


def _openapi_error(description: str) -> dict[str, Any]:
    return {
        "description": f"{description} (RFC7807)",
        "model": ErrorDetail,
        "content": _OPENAPI_ERROR_CONTENT,
    }


OPENAPI_ERROR_RESPONSES = {
    "400": _openapi_error("Bad Request"),
    "401": _openapi_error("Unauthorized"),
    "403": _openapi_error("Forbidden"),
    "404": _openapi_error("Not Found"),
    "409": _openapi_error("Conflict"),
    "422": _openapi_error("Validation Error"),
    "429": _openapi_error("Too Many Requests"),
    "default": _openapi_error("Error"),
}


class AppHTTPException(HTTPException):
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      AppHTTPException

    Responsabilidades:
      - Adjuntar un ErrorCode estable
      - Transportar detalles de validación (errors[])
      - Transportar campos extra en el body (ban_reason, retry_after, ...)
      - Permitir headers custom (Retry-After, RateLimit, etc.)

    Colaboradores:
      - app_exception_handler()
    ----------------------------------------------------------------------------
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        errors: list[dict[str, Any]] | None = None,
        extra: dict[str, Any] | None = None,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code
        self.errors = errors
        self.extra = extra or {}


# ---------------------------------------------------------------------------
# Factories de errores
# ---------------------------------------------------------------------------
def validation_error(
    detail: str, errors: list[dict[str, Any]] | None = None
) -> AppHTTPException:
    return AppHTTPException(422, ErrorCode.VALIDATION_ERROR, detail, errors)


def bad_request(detail: str, code: ErrorCode = ErrorCode.BAD_REQUEST) -> AppHTTPException:
    return AppHTTPException(400, code, detail)


def not_found(resource: str, identifier: str | None = None) -> AppHTTPException:
    if identifier is None:
        return AppHTTPException(404, ErrorCode.NOT_FOUND, f"{resource} not found")
    return AppHTTPException(404, ErrorCode.NOT_FOUND, f"{resource} '{identifier}' not found")


def conflict(detail: str) -> AppHTTPException:
    return AppHTTPException(409, ErrorCode.CONFLICT, detail)


def unauthorized(detail: str = "Authentication required") -> AppHTTPException:
    return AppHTTPException(401, ErrorCode.UNAUTHORIZED, detail)


def forbidden(detail: str = "Access denied") -> AppHTTPException:
    return AppHTTPException(403, ErrorCode.FORBIDDEN, detail)


def account_suspended(
    detail: str, *, ban_reason: str | None, banned_at: str | None
) -> AppHTTPException:
    return AppHTTPException(
        403,
        ErrorCode.ACCOUNT_SUSPENDED,
        detail,
        extra={
            "ban_reason": ban_reason or "No reason provided",
            "banned_at": banned_at,
        },
    )


def rate_limited(
    retry_after: int = 60,
    detail: str | None = None,
) -> AppHTTPException:
    exc = AppHTTPException(
        429,
        ErrorCode.RATE_LIMITED,
        detail or f"Too many requests. Retry in {retry_after}s",
        extra={"retry_after": retry_after},
    )
    exc.headers = {"Retry-After": str(retry_after)}
    return exc


def payload_too_large(max_size: str) -> AppHTTPException:
    return AppHTTPException(
        413,
        ErrorCode.PAYLOAD_TOO_LARGE,
        f"Payload exceeds the maximum allowed size ({max_size})",
    )


def internal_error(detail: str = "Internal server error") -> AppHTTPException:
    return AppHTTPException(500, ErrorCode.INTERNAL_ERROR, detail)


def service_unavailable(service: str) -> AppHTTPException:
    return AppHTTPException(
        503,
        ErrorCode.SERVICE_UNAVAILABLE,
        f"Service temporarily unavailable: {service}",
    )


def database_error(
    detail: str = "Database operation failed",
) -> AppHTTPException:
    return AppHTTPException(503, ErrorCode.DATABASE_ERROR, detail)


# ---------------------------------------------------------------------------
# Armado del payload
# ---------------------------------------------------------------------------
def build_problem(
    *,
    status: int,
    code: ErrorCode,
    detail: str,
    instance: str | None = None,
    errors: list[dict[str, Any]] | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Arma el body problem+json (compartido por handlers y middlewares ASGI)."""
    problem = ErrorDetail(
        message=detail,
        type=f"about:blank/{code.value.lower()}",
        title=code.value.replace("_", " ").title(),
        status=status,
        detail=detail,
        code=code,
        instance=instance,
        errors=errors or None,
    ).model_dump(mode="json", exclude_none=True)
    if extra:
        problem.update(extra)
    return problem


# ---------------------------------------------------------------------------
# Handlers FastAPI
# ---------------------------------------------------------------------------
async def app_exception_handler(
    request: Request, exc: AppHTTPException
) -> JSONResponse:
    """
    Handler para AppHTTPException.

    Incluye instance (URL) y reenvía headers opcionales (Retry-After, etc.).
    """
    request_id = getattr(getattr(request, "state", None), "request_id", None)

    errors = exc.errors or []
    if request_id:
        errors = [*errors, {"request_id": request_id}]

    content = build_problem(
        status=exc.status_code,
        code=exc.code,
        detail=str(exc.detail),
        instance=str(request.url),
        errors=errors,
        extra=exc.extra,
    )
    headers = getattr(exc, "headers", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=headers,
        media_type=PROBLEM_JSON_MEDIA_TYPE,
    )
