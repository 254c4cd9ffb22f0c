"""
===============================================================================
USER / ACCOUNT USE CASE RESULTS
===============================================================================

CRC CARD
-------------------------------------------------------------------------------
Component:
    user_results models (module)

Responsibilities:
    - UserErrorCode / UserError: categorías estables para registro y cuenta.
    - UserResult: contrato único (user + error) para los comandos de cuenta.
    - UserStats / PointsHistory: DTOs de lectura para /api/user.

Collaborators:
    - identity.users.User
    - domain.entities.PointTransaction / PointsSummary
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List

from ....domain.entities import PointTransaction
from ....domain.membership import MembershipLevel
from ....identity.users import User


class UserErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"


@dataclass(frozen=True)
class UserError:
    code: UserErrorCode
    message: str
    errors: List[str] = field(default_factory=list)


@dataclass
class UserResult:
    user: User | None = None
    error: UserError | None = None


@dataclass(frozen=True)
class UserStats:
    total_downloads: int
    total_points: int
    membership_level: MembershipLevel
    points_to_next_level: int | None
    join_date: datetime | None
    last_active: datetime | None
    last_download_at: datetime | None


@dataclass
class PointsHistory:
    transactions: List[PointTransaction]
    total: int
