"""
===============================================================================
TARJETA CRC — dependencies.py (Dependencias y helpers comunes)
===============================================================================

Responsabilidades:
  - Centralizar dependencias FastAPI que se repiten en routers:
      * usuario activo (require_user) y admin (require_admin)
      * paginación (page/limit -> PageRequest)
  - Helpers de auditoría para routers:
      * audit_success / audit_failure / audit_critical (archivos JSON-line)
      * emit (evento persistido best-effort)

Colaboradores:
  - identity.auth_users (require_user, require_admin)
  - application.security.AuditTrail
  - audit.emit_audit_event
  - crosscutting.pagination.PageRequest
===============================================================================
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import Query, Request

from moostyle.audit import emit_audit_event
from moostyle.container import get_audit_repository, get_audit_trail_service
from moostyle.crosscutting.pagination import DEFAULT_LIMIT, PageRequest
from moostyle.identity.auth_users import require_admin, require_user
from moostyle.identity.users import User

# Dependencias compartidas (una instancia por proceso).
current_user = require_user()
admin_user = require_admin()


def page_request(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1),
) -> PageRequest:
    return PageRequest.of(page, limit)


def audit_success(
    request: Request,
    operation: str,
    user: User | None,
    *,
    request_data: dict[str, Any] | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    get_audit_trail_service().record_operation(
        operation,
        request=request,
        user=user,
        request_data=request_data,
        details=details,
    )


def audit_failure(
    request: Request,
    operation: str,
    user: User | None,
    *,
    error: str,
    error_type: str,
    request_data: dict[str, Any] | None = None,
) -> None:
    get_audit_trail_service().record_failed_operation(
        operation,
        request=request,
        user=user,
        error=error,
        error_type=error_type,
        request_data=request_data,
    )


def audit_critical(
    request: Request,
    operation: str,
    user: User,
    *,
    request_data: dict[str, Any] | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    get_audit_trail_service().record_critical_operation(
        operation,
        request=request,
        user=user,
        request_data=request_data,
        details=details,
    )


def emit(
    action: str,
    user: User | None,
    *,
    target_id: UUID | None = None,
    metadata: dict[str, Any] | None = None,
) -> None:
    emit_audit_event(
        get_audit_repository(),
        action=action,
        user=user,
        target_id=target_id,
        metadata=metadata,
    )
