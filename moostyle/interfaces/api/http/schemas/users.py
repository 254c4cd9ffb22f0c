"""
===============================================================================
TARJETA CRC — schemas/users.py
===============================================================================

Módulo:
    Schemas HTTP para la cuenta del usuario (/api/user)

Responsabilidades:
    - Validar cambio de username.
    - Respuestas de estadísticas e historial/resumen de puntos.
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from moostyle.domain.membership import MembershipLevel

from .common import (
    USERNAME_MAX,
    USERNAME_MIN,
    USERNAME_PATTERN,
    EnvelopeRes,
    PaginatedEnvelopeRes,
    PointTransactionRes,
)


class UpdateProfileReq(BaseModel):
    username: str = Field(
        ..., min_length=USERNAME_MIN, max_length=USERNAME_MAX, pattern=USERNAME_PATTERN
    )


class UserStatsRes(BaseModel):
    total_downloads: int
    total_points: int
    membership_level: MembershipLevel
    points_to_next_level: int | None = None
    join_date: datetime | None = None
    last_active: datetime | None = None
    last_download_at: datetime | None = None


class UserStatsEnvelopeRes(EnvelopeRes):
    stats: UserStatsRes


class PointsHistoryRes(PaginatedEnvelopeRes):
    transactions: List[PointTransactionRes]


class PointsSummaryRes(BaseModel):
    total_earned: int
    total_spent: int
    balance: int
    transaction_count: int
    current_points: int
    membership_level: MembershipLevel


class PointsSummaryEnvelopeRes(EnvelopeRes):
    summary: PointsSummaryRes
