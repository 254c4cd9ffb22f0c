"""
===============================================================================
TARJETA CRC — identity/users.py
===============================================================================

Módulo:
    Modelos de Usuario

Responsabilidades:
    - Definir el enum de roles (user / admin / owner).
    - Definir el dataclass User que comparten auth, carrito, puntos y admin.
    - Exponer predicados simples (is_admin, is_banned) sin lógica de negocio.

Colaboradores:
    - identity/auth_users.py: emite/valida JWT a partir de User.
    - infrastructure/repositories/*/user.py: mapean filas/dicts -> User.
    - domain/membership.py: tipo de membership_level.

Notas:
    - User es inmutable: los cambios se expresan con dataclasses.replace().
    - owner y admin comparten permisos administrativos.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from ..domain.membership import MembershipLevel


class UserRole(str, Enum):
    """Roles soportados."""

    USER = "user"
    ADMIN = "admin"
    OWNER = "owner"


ADMIN_ROLES: frozenset[UserRole] = frozenset({UserRole.ADMIN, UserRole.OWNER})


def default_notification_settings() -> dict[str, Any]:
    return {"email_notifications": True}


@dataclass(frozen=True, slots=True)
class User:
    """Cuenta de la tienda (credenciales + puntos + estado de ban)."""

    id: UUID
    email: str
    username: str
    password_hash: str
    role: UserRole = UserRole.USER
    is_active: bool = True
    name: str | None = None
    points: int = 0
    membership_level: MembershipLevel = MembershipLevel.BRONZE
    notification_settings: dict[str, Any] = field(
        default_factory=default_notification_settings
    )
    last_download_at: datetime | None = None
    last_login_at: datetime | None = None
    ban_reason: str | None = None
    banned_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_banned(self) -> bool:
        return not self.is_active
