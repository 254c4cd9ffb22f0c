"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/admin.py
===============================================================================

Name:
    Admin Router (/api/admin, solo admin/owner)

Responsibilities:
    - Dashboard y listados paginados (usuarios, carritos, transacciones).
    - Gestión de usuarios: edición, rol, ban, borrado.
    - Panel de seguridad (métricas, reporte).
    - Disaster recovery (catálogo, ejecución, historial, test, reporte).
    - Backups cifrados (crear, estado, verificar).
    - Health del sistema desde el panel.

Patterns:
    - Thin Controller: reglas en casos de uso/servicios; acá solo mapeo HTTP.
    - Toda mutación deja: evento persistido (best-effort), entrada en el
      audit trail y contador de acciones admin.

Collaborators:
    - AdminUserManagementUseCase, AdminStatsUseCase
    - SecurityMetrics, DisasterRecovery, BackupService
    - dependencies (admin_user, audit_*, emit)
===============================================================================
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from moostyle.application.backup import BackupService
from moostyle.application.recovery import DisasterRecovery
from moostyle.application.security import SecurityMetrics
from moostyle.application.usecases.admin import (
    AdminStatsUseCase,
    AdminUserManagementUseCase,
)
from moostyle.container import (
    get_admin_stats_use_case,
    get_admin_user_management_use_case,
    get_backup_service,
    get_disaster_recovery,
    get_security_metrics_service,
)
from moostyle.crosscutting.error_responses import (
    OPENAPI_ERROR_RESPONSES,
    internal_error,
    not_found,
)
from moostyle.crosscutting.pagination import PageRequest
from moostyle.domain import audit
from moostyle.identity.users import User

from ..dependencies import (
    admin_user,
    audit_critical,
    audit_success,
    emit,
    page_request,
)
from ..error_mapping import raise_admin_error
from ..schemas.admin import (
    AdminBanReq,
    AdminCartsRes,
    AdminSetRoleReq,
    AdminStatsEnvelopeRes,
    AdminStatsRes,
    AdminTransactionsRes,
    AdminUpdateUserReq,
    AdminUserEnvelopeRes,
    AdminUsersRes,
    CreateBackupReq,
    DataEnvelopeRes,
    RecoveryExecuteReq,
    TransactionStatsRes,
)
from ..schemas.cart import CartRes
from ..schemas.common import EnvelopeRes, PointTransactionRes, UserRes
from ..schemas.health import HealthRes, SubsystemHealthRes
from . import health as health_routes

router = APIRouter(prefix="/admin", tags=["admin"], responses=OPENAPI_ERROR_RESPONSES)


def _track(
    metrics: SecurityMetrics, admin: User, action: str, target: dict[str, Any]
) -> None:
    metrics.record_admin_action(str(admin.id), action, target)


# -----------------------------------------------------------------------------
# Dashboard y listados
# -----------------------------------------------------------------------------
@router.get("/stats", response_model=AdminStatsEnvelopeRes)
def admin_stats(
    _admin: User = Depends(admin_user),
    use_case: AdminStatsUseCase = Depends(get_admin_stats_use_case),
):
    stats = use_case.dashboard()
    tx = stats.transactions
    return AdminStatsEnvelopeRes(
        stats=AdminStatsRes(
            total_users=stats.total_users,
            role_counts=stats.role_counts,
            active_users=stats.status_counts.get("active", 0),
            banned_users=stats.status_counts.get("banned", 0),
            total_carts=stats.total_carts,
            total_points=stats.total_points,
            transactions=TransactionStatsRes(
                total_transactions=tx.total_transactions,
                total_points_earned=tx.total_points_earned,
                total_points_spent=tx.total_points_spent,
                unique_users=tx.unique_users,
                net_points=tx.net_points,
            ),
            membership_distribution=stats.membership_distribution,
            recent_users=[UserRes.from_user(u) for u in stats.recent_users],
            recent_carts=[CartRes.from_cart(c) for c in stats.recent_carts],
            recent_transactions=[
                PointTransactionRes.from_transaction(t) for t in stats.recent_transactions
            ],
        )
    )


@router.get("/users", response_model=AdminUsersRes)
def list_users(
    search: str | None = Query(None, max_length=100),
    page: PageRequest = Depends(page_request),
    _admin: User = Depends(admin_user),
    use_case: AdminUserManagementUseCase = Depends(get_admin_user_management_use_case),
):
    result = use_case.list_users(page, search=search)
    return AdminUsersRes(
        users=[UserRes.from_user(u) for u in result.users],
        pagination=page.describe(result.total),
    )


@router.get("/carts", response_model=AdminCartsRes)
def list_carts(
    page: PageRequest = Depends(page_request),
    _admin: User = Depends(admin_user),
    use_case: AdminStatsUseCase = Depends(get_admin_stats_use_case),
):
    carts, total = use_case.list_carts(page)
    return AdminCartsRes(
        carts=[CartRes.from_cart(c) for c in carts],
        pagination=page.describe(total),
    )


@router.get("/point-transactions", response_model=AdminTransactionsRes)
def list_point_transactions(
    page: PageRequest = Depends(page_request),
    _admin: User = Depends(admin_user),
    use_case: AdminStatsUseCase = Depends(get_admin_stats_use_case),
):
    transactions, total = use_case.list_transactions(page)
    return AdminTransactionsRes(
        transactions=[PointTransactionRes.from_transaction(t) for t in transactions],
        pagination=page.describe(total),
    )


# -----------------------------------------------------------------------------
# Gestión de usuarios
# -----------------------------------------------------------------------------
@router.put("/users/{user_id}", response_model=AdminUserEnvelopeRes)
def update_user(
    user_id: UUID,
    req: AdminUpdateUserReq,
    request: Request,
    admin: User = Depends(admin_user),
    use_case: AdminUserManagementUseCase = Depends(get_admin_user_management_use_case),
    metrics: SecurityMetrics = Depends(get_security_metrics_service),
):
    changes = req.model_dump(exclude_none=True)
    result = use_case.update_user(actor=admin, user_id=user_id, **changes)
    if result.error is not None:
        raise_admin_error(result.error)

    emit(
        audit.ADMIN_USER_UPDATE,
        admin,
        target_id=user_id,
        metadata={"fields": sorted(changes)},
    )
    audit_success(
        request,
        "Admin User Update",
        admin,
        request_data=changes,
        details={"target_user_id": str(user_id)},
    )
    _track(metrics, admin, "USER_UPDATE", {"user_id": str(user_id), **changes})
    return AdminUserEnvelopeRes(
        message="User updated successfully",
        user=UserRes.from_user(result.user),
        transaction=(
            PointTransactionRes.from_transaction(result.transaction)
            if result.transaction
            else None
        ),
    )


@router.put("/users/{user_id}/role", response_model=AdminUserEnvelopeRes)
def set_user_role(
    user_id: UUID,
    req: AdminSetRoleReq,
    request: Request,
    admin: User = Depends(admin_user),
    use_case: AdminUserManagementUseCase = Depends(get_admin_user_management_use_case),
    metrics: SecurityMetrics = Depends(get_security_metrics_service),
):
    result = use_case.set_role(actor=admin, user_id=user_id, role=req.role)
    if result.error is not None:
        raise_admin_error(result.error)

    emit(audit.ADMIN_USER_ROLE, admin, target_id=user_id, metadata={"role": req.role.value})
    audit_critical(
        request,
        "Admin Role Change",
        admin,
        request_data={"role": req.role.value},
        details={"target_user_id": str(user_id)},
    )
    _track(metrics, admin, "ROLE_CHANGE", {"user_id": str(user_id), "role": req.role.value})
    return AdminUserEnvelopeRes(
        message="User role updated successfully", user=UserRes.from_user(result.user)
    )


@router.put("/users/{user_id}/ban", response_model=AdminUserEnvelopeRes)
def set_user_ban(
    user_id: UUID,
    req: AdminBanReq,
    request: Request,
    admin: User = Depends(admin_user),
    use_case: AdminUserManagementUseCase = Depends(get_admin_user_management_use_case),
    metrics: SecurityMetrics = Depends(get_security_metrics_service),
):
    result = use_case.set_ban(
        actor=admin, user_id=user_id, ban=req.ban, reason=req.ban_reason
    )
    if result.error is not None:
        raise_admin_error(result.error)

    action = audit.ADMIN_USER_BAN if req.ban else audit.ADMIN_USER_UNBAN
    emit(action, admin, target_id=user_id, metadata={"ban_reason": req.ban_reason})
    audit_critical(
        request,
        "User Ban" if req.ban else "User Unban",
        admin,
        request_data=req.model_dump(),
        details={"target_user_id": str(user_id)},
    )
    _track(
        metrics,
        admin,
        "USER_BAN" if req.ban else "USER_UNBAN",
        {"user_id": str(user_id), "reason": req.ban_reason},
    )
    message = "User banned successfully" if req.ban else "User unbanned successfully"
    return AdminUserEnvelopeRes(message=message, user=UserRes.from_user(result.user))


@router.delete("/users/{user_id}", response_model=EnvelopeRes)
def delete_user(
    user_id: UUID,
    request: Request,
    admin: User = Depends(admin_user),
    use_case: AdminUserManagementUseCase = Depends(get_admin_user_management_use_case),
    metrics: SecurityMetrics = Depends(get_security_metrics_service),
):
    result = use_case.delete_user(actor=admin, user_id=user_id)
    if result.error is not None:
        raise_admin_error(result.error)

    emit(audit.ADMIN_USER_DELETE, admin, target_id=user_id)
    audit_critical(
        request,
        "User Deletion",
        admin,
        details={"target_user_id": str(user_id)},
    )
    _track(metrics, admin, "USER_DELETE", {"user_id": str(user_id)})
    return EnvelopeRes(message="User deleted successfully")


# -----------------------------------------------------------------------------
# Seguridad
# -----------------------------------------------------------------------------
@router.get("/security/metrics", response_model=DataEnvelopeRes)
def security_metrics(
    _admin: User = Depends(admin_user),
    metrics: SecurityMetrics = Depends(get_security_metrics_service),
):
    return DataEnvelopeRes(data=metrics.get_security_metrics())


@router.get("/security/report", response_model=DataEnvelopeRes)
def security_report(
    period: str = Query("daily", pattern="^(daily|weekly|monthly)$"),
    _admin: User = Depends(admin_user),
    metrics: SecurityMetrics = Depends(get_security_metrics_service),
):
    return DataEnvelopeRes(data=metrics.generate_security_report(period))


# -----------------------------------------------------------------------------
# Disaster recovery
# -----------------------------------------------------------------------------
@router.get("/recovery/procedures", response_model=DataEnvelopeRes)
def recovery_procedures(
    _admin: User = Depends(admin_user),
    recovery: DisasterRecovery = Depends(get_disaster_recovery),
):
    return DataEnvelopeRes(data=recovery.get_recovery_procedures())


@router.post("/recovery/execute", response_model=DataEnvelopeRes)
async def recovery_execute(
    req: RecoveryExecuteReq,
    request: Request,
    admin: User = Depends(admin_user),
    recovery: DisasterRecovery = Depends(get_disaster_recovery),
    metrics: SecurityMetrics = Depends(get_security_metrics_service),
):
    if recovery.get_procedure(req.category, req.procedure) is None:
        raise not_found("Recovery procedure", f"{req.category}:{req.procedure}")

    details = {**req.details, "requested_by": str(admin.id)}
    result = await recovery.execute_recovery(req.category, req.procedure, details)

    emit(
        audit.ADMIN_RECOVERY_EXECUTE,
        admin,
        metadata={
            "category": req.category,
            "procedure": req.procedure,
            "recovery_id": result["recovery_id"],
            "success": result["success"],
        },
    )
    audit_critical(
        request,
        "Disaster Recovery",
        admin,
        request_data=req.model_dump(),
        details={"recovery_id": result["recovery_id"], "success": result["success"]},
    )
    _track(
        metrics,
        admin,
        "RECOVERY_EXECUTE",
        {"category": req.category, "procedure": req.procedure},
    )
    message = (
        "Recovery procedure completed"
        if result["success"]
        else f"Recovery procedure failed: {result.get('error')}"
    )
    return DataEnvelopeRes(success=result["success"], message=message, data=result)


@router.get("/recovery/history", response_model=DataEnvelopeRes)
def recovery_history(
    limit: int = Query(50, ge=1, le=100),
    _admin: User = Depends(admin_user),
    recovery: DisasterRecovery = Depends(get_disaster_recovery),
):
    return DataEnvelopeRes(data=recovery.get_recovery_history(limit))


@router.post("/recovery/test", response_model=DataEnvelopeRes)
def recovery_test(
    request: Request,
    admin: User = Depends(admin_user),
    recovery: DisasterRecovery = Depends(get_disaster_recovery),
):
    results = recovery.test_recovery_procedures()
    audit_success(request, "Recovery Procedures Test", admin)
    return DataEnvelopeRes(message="Recovery procedures tested", data=results)


@router.get("/recovery/report", response_model=DataEnvelopeRes)
def recovery_report(
    _admin: User = Depends(admin_user),
    recovery: DisasterRecovery = Depends(get_disaster_recovery),
):
    return DataEnvelopeRes(data=recovery.generate_recovery_report())


# -----------------------------------------------------------------------------
# Backups
# -----------------------------------------------------------------------------
@router.post("/backups", response_model=DataEnvelopeRes, status_code=201)
def create_backup(
    req: CreateBackupReq,
    request: Request,
    admin: User = Depends(admin_user),
    backups: BackupService = Depends(get_backup_service),
    metrics: SecurityMetrics = Depends(get_security_metrics_service),
):
    result = backups.create_backup(req.type)
    if not result.success:
        raise internal_error(f"Backup failed: {result.error}")

    emit(
        audit.ADMIN_BACKUP_CREATE,
        admin,
        metadata={"type": req.type.value, "filename": result.filename},
    )
    audit_critical(
        request,
        "Backup Creation",
        admin,
        request_data={"type": req.type.value},
        details={"filename": result.filename, "record_count": result.record_count},
    )
    _track(metrics, admin, "BACKUP_CREATE", {"type": req.type.value})
    return DataEnvelopeRes(message="Backup created successfully", data=result.metadata)


@router.get("/backups/status", response_model=DataEnvelopeRes)
def backup_status(
    _admin: User = Depends(admin_user),
    backups: BackupService = Depends(get_backup_service),
):
    return DataEnvelopeRes(data=backups.get_backup_status())


@router.get("/backups/{filename}/verify", response_model=DataEnvelopeRes)
def verify_backup(
    filename: str,
    _admin: User = Depends(admin_user),
    backups: BackupService = Depends(get_backup_service),
):
    verification = backups.verify_backup(filename)
    return DataEnvelopeRes(
        success=bool(verification.get("valid")),
        message="Backup is valid" if verification.get("valid") else "Backup is invalid",
        data=verification,
    )


# -----------------------------------------------------------------------------
# Health (vista admin)
# -----------------------------------------------------------------------------
@router.get("/health", response_model=HealthRes)
def admin_health(_admin: User = Depends(admin_user)):
    return health_routes.health()


@router.get("/health/database", response_model=SubsystemHealthRes)
def admin_health_database(_admin: User = Depends(admin_user)):
    return health_routes.health_database()
