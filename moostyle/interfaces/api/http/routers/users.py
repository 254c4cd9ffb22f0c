"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/users.py
===============================================================================

Name:
    User Router (/api/user)

Responsibilities:
    - Perfil propio (lectura y cambio de username).
    - Estadísticas de cuenta (descargas, puntos, nivel, fechas).
    - Historial paginado y resumen de puntos.

Collaborators:
    - application.usecases.ManageAccountUseCase
    - schemas.users / schemas.common
===============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from moostyle.application.usecases import ManageAccountUseCase
from moostyle.container import get_manage_account_use_case
from moostyle.crosscutting.pagination import PageRequest
from moostyle.identity.users import User

from ..dependencies import audit_success, current_user, page_request
from ..error_mapping import raise_user_error
from ..schemas.common import PointTransactionRes, UserEnvelopeRes, UserRes
from ..schemas.users import (
    PointsHistoryRes,
    PointsSummaryEnvelopeRes,
    PointsSummaryRes,
    UpdateProfileReq,
    UserStatsEnvelopeRes,
    UserStatsRes,
)

router = APIRouter(prefix="/user", tags=["user"])


@router.get("/profile", response_model=UserEnvelopeRes)
def get_profile(user: User = Depends(current_user)):
    return UserEnvelopeRes(user=UserRes.from_user(user))


@router.put("/profile", response_model=UserEnvelopeRes)
def update_profile(
    req: UpdateProfileReq,
    request: Request,
    user: User = Depends(current_user),
    use_case: ManageAccountUseCase = Depends(get_manage_account_use_case),
):
    """Solo el username es editable (409 si ya existe)."""
    result = use_case.update_username(user, req.username)
    if result.error is not None:
        raise_user_error(result.error)
    audit_success(request, "Profile Update", user, request_data=req.model_dump())
    return UserEnvelopeRes(
        message="Profile updated successfully", user=UserRes.from_user(result.user)
    )


@router.get("/stats", response_model=UserStatsEnvelopeRes)
def get_stats(
    user: User = Depends(current_user),
    use_case: ManageAccountUseCase = Depends(get_manage_account_use_case),
):
    stats = use_case.get_stats(user)
    return UserStatsEnvelopeRes(
        stats=UserStatsRes(
            total_downloads=stats.total_downloads,
            total_points=stats.total_points,
            membership_level=stats.membership_level,
            points_to_next_level=stats.points_to_next_level,
            join_date=stats.join_date,
            last_active=stats.last_active,
            last_download_at=stats.last_download_at,
        )
    )


@router.get("/points/history", response_model=PointsHistoryRes)
def points_history(
    user: User = Depends(current_user),
    page: PageRequest = Depends(page_request),
    use_case: ManageAccountUseCase = Depends(get_manage_account_use_case),
):
    history = use_case.points_history(user.id, limit=page.limit, offset=page.offset)
    return PointsHistoryRes(
        transactions=[PointTransactionRes.from_transaction(t) for t in history.transactions],
        pagination=page.describe(history.total),
    )


@router.get("/points/summary", response_model=PointsSummaryEnvelopeRes)
def points_summary(
    user: User = Depends(current_user),
    use_case: ManageAccountUseCase = Depends(get_manage_account_use_case),
):
    summary = use_case.points_summary(user.id)
    return PointsSummaryEnvelopeRes(
        summary=PointsSummaryRes(
            total_earned=summary.total_earned,
            total_spent=summary.total_spent,
            balance=summary.balance,
            transaction_count=summary.transaction_count,
            current_points=user.points,
            membership_level=user.membership_level,
        )
    )
