"""
===============================================================================
USE CASE: Admin Dashboard Stats + Listings
===============================================================================

CRC CARD
-------------------------------------------------------------------------------
Class:
    AdminStatsUseCase

Responsibilities:
    - Armar el resumen del dashboard (usuarios, roles, estado, carritos,
      puntos, transacciones, distribución de niveles, recientes).
    - Listar carritos y transacciones paginados.

Collaborators:
    - UserRepository, CartRepository, PointTransactionRepository
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from ....crosscutting.pagination import PageRequest
from ....domain.entities import Cart, PointsSystemStats, PointTransaction
from ....domain.repositories import (
    CartRepository,
    PointTransactionRepository,
    UserRepository,
)
from ....identity.users import User

RECENT_LIMIT = 5


@dataclass
class DashboardStats:
    total_users: int
    role_counts: dict[str, int]
    status_counts: dict[str, int]
    total_carts: int
    total_points: int
    transactions: PointsSystemStats
    membership_distribution: dict[str, int]
    recent_users: List[User]
    recent_carts: List[Cart]
    recent_transactions: List[PointTransaction]


class AdminStatsUseCase:
    def __init__(
        self,
        user_repository: UserRepository,
        cart_repository: CartRepository,
        transaction_repository: PointTransactionRepository,
    ) -> None:
        self._users = user_repository
        self._carts = cart_repository
        self._transactions = transaction_repository

    def dashboard(self) -> DashboardStats:
        return DashboardStats(
            total_users=self._users.count_users(),
            role_counts=self._users.role_counts(),
            status_counts=self._users.status_counts(),
            total_carts=self._carts.count_carts(),
            total_points=self._users.total_points(),
            transactions=self._transactions.system_stats(),
            membership_distribution=self._users.membership_distribution(),
            recent_users=self._users.list_users(limit=RECENT_LIMIT),
            recent_carts=self._carts.list_carts(limit=RECENT_LIMIT),
            recent_transactions=self._transactions.list_transactions(limit=RECENT_LIMIT),
        )

    def list_carts(self, page: PageRequest) -> tuple[List[Cart], int]:
        return (
            self._carts.list_carts(limit=page.limit, offset=page.offset),
            self._carts.count_carts(),
        )

    def list_transactions(self, page: PageRequest) -> tuple[List[PointTransaction], int]:
        return (
            self._transactions.list_transactions(limit=page.limit, offset=page.offset),
            self._transactions.count_transactions(),
        )
