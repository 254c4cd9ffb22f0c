"""Admin use cases: gestión de usuarios y dashboard."""

from .admin_results import (
    AdminDeleteResult,
    AdminError,
    AdminErrorCode,
    AdminUserResult,
    UserPage,
)
from .admin_stats import AdminStatsUseCase, DashboardStats
from .manage_users import AdminUserManagementUseCase

__all__ = [
    "AdminDeleteResult",
    "AdminError",
    "AdminErrorCode",
    "AdminUserResult",
    "UserPage",
    "AdminStatsUseCase",
    "DashboardStats",
    "AdminUserManagementUseCase",
]
