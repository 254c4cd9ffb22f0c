"""
===============================================================================
TARJETA CRC — schemas/admin.py
===============================================================================

Módulo:
    Schemas HTTP para el panel admin (/api/admin)

Responsabilidades:
    - Requests de edición de usuario, rol, ban, recovery y backups.
    - Respuestas de dashboard, listados paginados y resultados admin.

Reglas:
    - Schemas NO ejecutan casos de uso; solo tipos y validación.
===============================================================================
"""

from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, Field

from moostyle.application.backup import BackupType
from moostyle.identity.users import UserRole

from .cart import CartRes
from .common import (
    USERNAME_MAX,
    USERNAME_MIN,
    USERNAME_PATTERN,
    EnvelopeRes,
    PaginatedEnvelopeRes,
    PointTransactionRes,
    UserRes,
)


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------
class AdminUpdateUserReq(BaseModel):
    username: str | None = Field(
        default=None,
        min_length=USERNAME_MIN,
        max_length=USERNAME_MAX,
        pattern=USERNAME_PATTERN,
    )
    name: str | None = Field(default=None, max_length=100)
    points: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class AdminSetRoleReq(BaseModel):
    role: UserRole


class AdminBanReq(BaseModel):
    ban: bool
    ban_reason: str | None = Field(default=None, max_length=500)


class RecoveryExecuteReq(BaseModel):
    category: str = Field(..., min_length=1, max_length=50)
    procedure: str = Field(..., min_length=1, max_length=100)
    details: dict[str, Any] = Field(default_factory=dict)


class CreateBackupReq(BaseModel):
    type: BackupType


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------
class TransactionStatsRes(BaseModel):
    total_transactions: int
    total_points_earned: int
    total_points_spent: int
    unique_users: int
    net_points: int


class AdminStatsRes(BaseModel):
    total_users: int
    role_counts: dict[str, int]
    active_users: int
    banned_users: int
    total_carts: int
    total_points: int
    transactions: TransactionStatsRes
    membership_distribution: dict[str, int]
    recent_users: List[UserRes]
    recent_carts: List[CartRes]
    recent_transactions: List[PointTransactionRes]


class AdminStatsEnvelopeRes(EnvelopeRes):
    stats: AdminStatsRes


class AdminUsersRes(PaginatedEnvelopeRes):
    users: List[UserRes]


class AdminCartsRes(PaginatedEnvelopeRes):
    carts: List[CartRes]


class AdminTransactionsRes(PaginatedEnvelopeRes):
    transactions: List[PointTransactionRes]


class AdminUserEnvelopeRes(EnvelopeRes):
    user: UserRes
    transaction: PointTransactionRes | None = None


class DataEnvelopeRes(EnvelopeRes):
    """Respuesta genérica para reportes (seguridad, recovery, backups)."""

    data: Any = None
