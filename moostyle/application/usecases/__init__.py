"""
Use Cases Layer (Business Operations)

This package exposes entry points for business logic, organized by feature.

Structure
---------
usecases/
├── cart/    # Cart management and the cart download (points) flow
├── users/   # Registration, account settings, stats and own points
└── admin/   # User administration and dashboard stats

Usage
-----
Import from subpackages for clarity:

    from moostyle.application.usecases.cart import DownloadCartUseCase

Or use the barrel exports from this module:

    from moostyle.application.usecases import DownloadCartUseCase
"""

# Admin
from .admin import (
    AdminDeleteResult,
    AdminError,
    AdminErrorCode,
    AdminStatsUseCase,
    AdminUserManagementUseCase,
    AdminUserResult,
    DashboardStats,
    UserPage,
)

# Cart
from .cart import (
    CartError,
    CartErrorCode,
    CartResult,
    DownloadCartUseCase,
    DownloadedItem,
    DownloadError,
    DownloadErrorCode,
    DownloadResult,
    ManageCartUseCase,
)

# Users
from .users import (
    ManageAccountUseCase,
    PointsHistory,
    RegisterUserUseCase,
    UserError,
    UserErrorCode,
    UserResult,
    UserStats,
)

__all__ = [
    # Admin
    "AdminDeleteResult",
    "AdminError",
    "AdminErrorCode",
    "AdminStatsUseCase",
    "AdminUserManagementUseCase",
    "AdminUserResult",
    "DashboardStats",
    "UserPage",
    # Cart
    "CartError",
    "CartErrorCode",
    "CartResult",
    "DownloadCartUseCase",
    "DownloadedItem",
    "DownloadError",
    "DownloadErrorCode",
    "DownloadResult",
    "ManageCartUseCase",
    # Users
    "ManageAccountUseCase",
    "PointsHistory",
    "RegisterUserUseCase",
    "UserError",
    "UserErrorCode",
    "UserResult",
    "UserStats",
]
