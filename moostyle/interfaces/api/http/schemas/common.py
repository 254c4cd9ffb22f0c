"""
===============================================================================
TARJETA CRC — schemas/common.py
===============================================================================

Módulo:
    DTOs compartidos (envelope + mapeo de entidades a respuestas)

Responsabilidades:
    - Definir el envelope {success, message} de todas las respuestas OK.
    - Convertir User / PointTransaction a DTOs sin exponer password_hash.
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from moostyle.crosscutting.pagination import Pagination
from moostyle.domain.entities import PointTransaction
from moostyle.domain.membership import MembershipLevel
from moostyle.identity.users import User, UserRole

USERNAME_PATTERN = r"^[A-Za-z0-9_-]+$"
USERNAME_MIN = 3
USERNAME_MAX = 30


class EnvelopeRes(BaseModel):
    success: bool = True
    message: str = ""


class UserRes(BaseModel):
    id: UUID
    email: str
    username: str
    name: str | None = None
    role: UserRole
    is_active: bool
    points: int
    membership_level: MembershipLevel
    notification_settings: dict[str, Any] = Field(default_factory=dict)
    last_download_at: datetime | None = None
    last_login_at: datetime | None = None
    ban_reason: str | None = None
    banned_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserRes":
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            name=user.name,
            role=user.role,
            is_active=user.is_active,
            points=user.points,
            membership_level=user.membership_level,
            notification_settings=dict(user.notification_settings),
            last_download_at=user.last_download_at,
            last_login_at=user.last_login_at,
            ban_reason=user.ban_reason,
            banned_at=user.banned_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserEnvelopeRes(EnvelopeRes):
    user: UserRes


class PointTransactionRes(BaseModel):
    id: UUID
    user_id: UUID
    points: int
    type: str
    source: str
    description: str
    balance_before: int
    balance_after: int
    level_before: MembershipLevel
    level_after: MembershipLevel
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @classmethod
    def from_transaction(cls, tx: PointTransaction) -> "PointTransactionRes":
        return cls(
            id=tx.id,
            user_id=tx.user_id,
            points=tx.points,
            type=tx.type.value,
            source=tx.source.value,
            description=tx.description,
            balance_before=tx.balance_before,
            balance_after=tx.balance_after,
            level_before=tx.level_before,
            level_after=tx.level_after,
            metadata=dict(tx.metadata),
            created_at=tx.created_at,
        )


class PaginatedEnvelopeRes(EnvelopeRes):
    pagination: Pagination
