"""
===============================================================================
USE CASE: Admin User Management (edit / role / ban / delete)
===============================================================================

Business Goal:
    Permitir a admins/owners administrar cuentas sin romper invariantes:
      - membership_level siempre acompaña a points
      - todo cambio de puntos deja una PointTransaction (source=admin)
      - un admin no puede degradarse, banearse ni borrarse a sí mismo

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    AdminUserManagementUseCase

Responsibilities:
    - Listar/buscar usuarios paginados.
    - Editar username/name/points/is_active (puntos + ledger en un unit of work).
    - Cambiar rol, banear/desbanear, borrar usuario (cascade).

Collaborators:
    - UserRepository
    - PointsUnitOfWork (edición de puntos atómica)
    - domain.membership.membership_for_points
===============================================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from ....crosscutting.logger import logger
from ....crosscutting.metrics import record_points_awarded
from ....crosscutting.pagination import PageRequest
from ....domain.entities import PointTransaction, TransactionSource, TransactionType
from ....domain.membership import membership_for_points
from ....domain.repositories import PointsUnitOfWork, UserRepository
from ....identity.users import ADMIN_ROLES, User, UserRole
from .admin_results import (
    AdminDeleteResult,
    AdminError,
    AdminErrorCode,
    AdminUserResult,
    UserPage,
)

_MSG_USER_NOT_FOUND = "User not found"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AdminUserManagementUseCase:
    def __init__(
        self,
        user_repository: UserRepository,
        unit_of_work: PointsUnitOfWork,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._users = user_repository
        self._uow = unit_of_work
        self._clock = clock

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------
    def list_users(self, page: PageRequest, *, search: str | None = None) -> UserPage:
        search = (search or "").strip() or None
        return UserPage(
            users=self._users.list_users(
                search=search, limit=page.limit, offset=page.offset
            ),
            total=self._users.count_users(search=search),
        )

    # ------------------------------------------------------------------
    # Comandos
    # ------------------------------------------------------------------
    def update_user(
        self,
        *,
        actor: User,
        user_id: UUID,
        username: str | None = None,
        name: str | None = None,
        points: int | None = None,
        is_active: bool | None = None,
    ) -> AdminUserResult:
        if points is not None and points < 0:
            return self._error(AdminErrorCode.VALIDATION_ERROR, "Points must be >= 0")
        if is_active is False and actor.id == user_id:
            return self._error(AdminErrorCode.FORBIDDEN, "You cannot deactivate yourself")

        if username is not None:
            username = username.strip()
            existing = self._users.get_by_username(username)
            if existing is not None and existing.id != user_id:
                return self._error(AdminErrorCode.CONFLICT, "Username already taken")

        with self._uow.begin() as session:
            user = session.lock_user(user_id)
            if user is None:
                return self._error(AdminErrorCode.NOT_FOUND, _MSG_USER_NOT_FOUND)

            changes: dict[str, object] = {}
            if username is not None:
                changes["username"] = username
            if name is not None:
                changes["name"] = name.strip() or None
            if is_active is not None and is_active != user.is_active:
                changes.update(self._ban_fields(ban=not is_active, reason=None))

            transaction = None
            if points is not None and points != user.points:
                new_level = membership_for_points(points)
                transaction = self._admin_adjustment(actor, user, points, new_level)
                changes["points"] = points
                changes["membership_level"] = new_level
                session.record_transaction(transaction)

            updated = replace(user, **changes)
            session.update_user(updated)

        if transaction is not None and transaction.points > 0:
            record_points_awarded(transaction.points, TransactionSource.ADMIN.value)
        logger.info(
            "Admin updated user",
            extra={
                "admin_id": str(actor.id),
                "user_id": str(user_id),
                "fields": sorted(changes),
            },
        )
        return AdminUserResult(user=updated, transaction=transaction)

    def set_role(self, *, actor: User, user_id: UUID, role: UserRole) -> AdminUserResult:
        if actor.id == user_id and role not in ADMIN_ROLES:
            return self._error(AdminErrorCode.FORBIDDEN, "You cannot demote yourself")
        user = self._users.get_by_id(user_id)
        if user is None:
            return self._error(AdminErrorCode.NOT_FOUND, _MSG_USER_NOT_FOUND)
        updated = self._users.update(replace(user, role=role))
        logger.info(
            "Admin changed role",
            extra={"admin_id": str(actor.id), "user_id": str(user_id), "role": role.value},
        )
        return AdminUserResult(user=updated)

    def set_ban(
        self, *, actor: User, user_id: UUID, ban: bool, reason: str | None = None
    ) -> AdminUserResult:
        if actor.id == user_id:
            return self._error(AdminErrorCode.FORBIDDEN, "You cannot ban yourself")
        user = self._users.get_by_id(user_id)
        if user is None:
            return self._error(AdminErrorCode.NOT_FOUND, _MSG_USER_NOT_FOUND)
        updated = self._users.update(replace(user, **self._ban_fields(ban=ban, reason=reason)))
        logger.warning(
            "Admin ban status changed",
            extra={"admin_id": str(actor.id), "user_id": str(user_id), "banned": ban},
        )
        return AdminUserResult(user=updated)

    def delete_user(self, *, actor: User, user_id: UUID) -> AdminDeleteResult:
        if actor.id == user_id:
            return AdminDeleteResult(
                error=AdminError(AdminErrorCode.FORBIDDEN, "You cannot delete yourself")
            )
        if not self._users.delete(user_id):
            return AdminDeleteResult(
                error=AdminError(AdminErrorCode.NOT_FOUND, _MSG_USER_NOT_FOUND)
            )
        logger.warning(
            "Admin deleted user",
            extra={"admin_id": str(actor.id), "user_id": str(user_id)},
        )
        return AdminDeleteResult(deleted=True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _ban_fields(self, *, ban: bool, reason: str | None) -> dict[str, object]:
        if ban:
            return {
                "is_active": False,
                "ban_reason": (reason or "").strip() or None,
                "banned_at": self._clock(),
            }
        return {"is_active": True, "ban_reason": None, "banned_at": None}

    def _admin_adjustment(
        self, actor: User, user: User, points: int, new_level
    ) -> PointTransaction:
        delta = points - user.points
        return PointTransaction(
            user_id=user.id,
            points=delta,
            type=TransactionType.BONUS if delta > 0 else TransactionType.PENALTY,
            source=TransactionSource.ADMIN,
            description=f"Admin adjustment by {actor.username}",
            balance_before=user.points,
            balance_after=points,
            level_before=user.membership_level,
            level_after=new_level,
            metadata={"admin_id": str(actor.id)},
            created_at=self._clock(),
        )

    @staticmethod
    def _error(code: AdminErrorCode, message: str) -> AdminUserResult:
        return AdminUserResult(error=AdminError(code, message))
