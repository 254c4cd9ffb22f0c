"""
===============================================================================
USE CASE: Manage Account (profile / password / notifications / stats / points)
===============================================================================

CRC CARD
-------------------------------------------------------------------------------
Class:
    ManageAccountUseCase

Responsibilities:
    - Cambiar username (único, case-insensitive).
    - Cambiar password verificando el actual (UNAUTHORIZED si no coincide).
    - Guardar preferencias de notificación.
    - Armar estadísticas del usuario y su historial/resumen de puntos.

Collaborators:
    - UserRepository, PointTransactionRepository
    - identity.auth_users (verify_password, hash_password, validate_password_strength)
===============================================================================
"""

from __future__ import annotations

from dataclasses import replace
from uuid import UUID

from ....domain.entities import PointsSummary, TransactionSource
from ....domain.membership import points_to_next_level
from ....domain.repositories import PointTransactionRepository, UserRepository
from ....identity.auth_users import (
    hash_password,
    validate_password_strength,
    verify_password,
)
from ....identity.users import User
from .user_results import PointsHistory, UserError, UserErrorCode, UserResult, UserStats


class ManageAccountUseCase:
    def __init__(
        self,
        user_repository: UserRepository,
        transaction_repository: PointTransactionRepository,
    ) -> None:
        self._users = user_repository
        self._transactions = transaction_repository

    def update_username(self, user: User, username: str) -> UserResult:
        username = username.strip()
        if username == user.username:
            return UserResult(user=user)

        existing = self._users.get_by_username(username)
        if existing is not None and existing.id != user.id:
            return UserResult(
                error=UserError(UserErrorCode.CONFLICT, "Username already taken")
            )
        return UserResult(user=self._users.update(replace(user, username=username)))

    def change_password(
        self, user: User, *, current_password: str, new_password: str
    ) -> UserResult:
        if not verify_password(current_password, user.password_hash):
            return UserResult(
                error=UserError(
                    UserErrorCode.UNAUTHORIZED, "Current password is incorrect"
                )
            )
        problems = validate_password_strength(new_password)
        if problems:
            return UserResult(
                error=UserError(
                    UserErrorCode.VALIDATION_ERROR,
                    "Password does not meet requirements",
                    errors=problems,
                )
            )
        updated = replace(user, password_hash=hash_password(new_password))
        return UserResult(user=self._users.update(updated))

    def update_notifications(self, user: User, *, email_notifications: bool) -> UserResult:
        settings = {**user.notification_settings, "email_notifications": email_notifications}
        return UserResult(
            user=self._users.update(replace(user, notification_settings=settings))
        )

    def get_stats(self, user: User) -> UserStats:
        downloads = self._transactions.count_for_user(
            user.id, source=TransactionSource.DOWNLOAD.value
        )
        return UserStats(
            total_downloads=downloads,
            total_points=user.points,
            membership_level=user.membership_level,
            points_to_next_level=points_to_next_level(user.points),
            join_date=user.created_at,
            last_active=user.last_login_at or user.updated_at,
            last_download_at=user.last_download_at,
        )

    def points_history(self, user_id: UUID, *, limit: int, offset: int) -> PointsHistory:
        summary = self._transactions.summary_for_user(user_id)
        return PointsHistory(
            transactions=self._transactions.list_for_user(
                user_id, limit=limit, offset=offset
            ),
            total=summary.transaction_count,
        )

    def points_summary(self, user_id: UUID) -> PointsSummary:
        return self._transactions.summary_for_user(user_id)
