"""
===============================================================================
ADMIN USE CASE RESULTS
===============================================================================

CRC CARD
-------------------------------------------------------------------------------
Component:
    admin_results models (module)

Responsibilities:
    - AdminErrorCode / AdminError: errores de gestión de usuarios por admins
      (incluye FORBIDDEN para acciones sobre uno mismo).
    - AdminUserResult / AdminDeleteResult: contratos de salida.
    - UserPage: página de usuarios + total para la paginación.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List

from ....domain.entities import PointTransaction
from ....identity.users import User


class AdminErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"


@dataclass(frozen=True)
class AdminError:
    code: AdminErrorCode
    message: str


@dataclass
class AdminUserResult:
    user: User | None = None
    transaction: PointTransaction | None = None
    error: AdminError | None = None


@dataclass
class AdminDeleteResult:
    deleted: bool = False
    error: AdminError | None = None


@dataclass
class UserPage:
    users: List[User]
    total: int
