"""
===============================================================================
TARJETA CRC — application/security/audit_trail.py
===============================================================================

Clase:
    AuditTrail

Responsabilidades:
    - Registrar operaciones sensibles exitosas en audit/<operacion>.log y en
      audit/general-audit.log.
    - Registrar operaciones fallidas en audit/failed-operations.log.
    - Registrar operaciones críticas (admin) en audit/critical-operations.log
      con severity CRITICAL y admin_action=true.
    - Redactar datos sensibles del request (recursivo).

Colaboradores:
    - SecurityLogWriter
    - crosscutting.middleware.get_client_ip
    - identity.users.User (actor)

Notas:
    - Se llama explícitamente desde los routers DESPUÉS de un resultado OK
      (o del error tipado); no intercepta respuestas.
    - Complementa audit_events en DB (moostyle/audit.py), no lo reemplaza.
===============================================================================
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from starlette.requests import Request

from ...crosscutting.middleware import get_client_ip
from ...identity.users import User
from .log_files import SecurityLogWriter, get_security_log_writer

REDACTED = "[REDACTED]"
SENSITIVE_FIELDS = ("password", "token", "secret", "key", "auth", "credential")

_AUDIT_DIR = "audit"
_GENERAL_LOG = "general-audit.log"
_FAILED_LOG = "failed-operations.log"
_CRITICAL_LOG = "critical-operations.log"


def sanitize_request_data(data: Any) -> Any:
    """Redacta cualquier clave que contenga un término sensible (recursivo)."""
    if isinstance(data, dict):
        sanitized: dict[str, Any] = {}
        for key, value in data.items():
            lowered = str(key).lower()
            if any(term in lowered for term in SENSITIVE_FIELDS):
                sanitized[key] = REDACTED
            else:
                sanitized[key] = sanitize_request_data(value)
        return sanitized
    if isinstance(data, list):
        return [sanitize_request_data(item) for item in data]
    return data


def operation_slug(operation: str) -> str:
    """"Ban User" -> "ban-user"."""
    slug = re.sub(r"\s+", "-", operation.strip().lower())
    return re.sub(r"[^a-z0-9_-]", "", slug) or "operation"


def _actor_fields(user: User | None) -> dict[str, Any]:
    if user is None:
        return {"user_id": "anonymous", "user_email": "anonymous", "user_role": "anonymous"}
    return {
        "user_id": str(user.id),
        "user_email": user.email,
        "user_role": user.role.value,
    }


class AuditTrail:
    def __init__(self, writer: SecurityLogWriter) -> None:
        self._writer = writer

    def _base_record(
        self,
        operation: str,
        request: Request,
        user: User | None,
        request_data: dict[str, Any] | None,
    ) -> dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "operation": operation,
            "method": request.method,
            "url": str(request.url.path),
            "ip": get_client_ip(request),
            "user_agent": request.headers.get("user-agent"),
            **_actor_fields(user),
            "request_data": {
                "body": sanitize_request_data(request_data or {}),
                "query": sanitize_request_data(dict(request.query_params)),
                "params": sanitize_request_data(dict(request.path_params)),
            },
        }

    def _append(self, filename: str, record: dict[str, Any]) -> None:
        self._writer.append(f"{_AUDIT_DIR}/{filename}", record)

    def record_operation(
        self,
        operation: str,
        *,
        request: Request,
        user: User | None,
        request_data: dict[str, Any] | None = None,
        status_code: int = 200,
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        record = {
            **self._base_record(operation, request, user, request_data),
            "response_status": status_code,
            "success": True,
            "details": details or {},
        }
        self._append(f"{operation_slug(operation)}.log", record)
        self._append(_GENERAL_LOG, record)
        return record

    def record_failed_operation(
        self,
        operation: str,
        *,
        request: Request,
        user: User | None,
        error: str,
        error_type: str,
        request_data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        record = {
            **self._base_record(operation, request, user, request_data),
            "success": False,
            "error": {"message": error, "type": error_type},
        }
        self._append(_FAILED_LOG, record)
        return record

    def record_critical_operation(
        self,
        operation: str,
        *,
        request: Request,
        user: User | None,
        request_data: dict[str, Any] | None = None,
        status_code: int = 200,
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        record = {
            **self._base_record(operation, request, user, request_data),
            "severity": "CRITICAL",
            "response_status": status_code,
            "success": True,
            "details": {**(details or {}), "admin_action": True},
        }
        self._append(_CRITICAL_LOG, record)
        self._append(_GENERAL_LOG, record)
        return record


@lru_cache(maxsize=1)
def get_audit_trail() -> AuditTrail:
    return AuditTrail(get_security_log_writer())
