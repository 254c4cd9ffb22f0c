"""User use cases: registro, cuenta, estadísticas y puntos propios."""

from .manage_account import ManageAccountUseCase
from .register_user import RegisterUserUseCase
from .user_results import (
    PointsHistory,
    UserError,
    UserErrorCode,
    UserResult,
    UserStats,
)

__all__ = [
    "ManageAccountUseCase",
    "RegisterUserUseCase",
    "PointsHistory",
    "UserError",
    "UserErrorCode",
    "UserResult",
    "UserStats",
]
