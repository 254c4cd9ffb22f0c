"""
===============================================================================
TARJETA CRC — domain/__init__.py
===============================================================================

Módulo:
    Exportaciones de la Capa de Dominio (API pública del dominio)

Responsabilidades:
    - Centralizar exports para imports limpios en application/interfaces.
    - Mantener estable el "surface area" del dominio.

Colaboradores:
    - domain.entities: Cart, CartItem, ProductSnapshot, PointTransaction
    - domain.membership: niveles y umbrales
    - domain.repositories: Puertos de persistencia
    - domain.audit: AuditEvent

Reglas:
    - Solo re-exporta contratos/entidades del dominio.
    - No importar infraestructura ni identity aquí (identity depende del dominio).
===============================================================================
"""

from .audit import AuditEvent
from .entities import (
    Cart,
    CartItem,
    PointsSummary,
    PointsSystemStats,
    PointTransaction,
    ProductSnapshot,
    TransactionSource,
    TransactionType,
)
from .membership import MembershipLevel, membership_for_points, points_to_next_level
from .repositories import (
    AuditEventRepository,
    CartRepository,
    PointsSession,
    PointsUnitOfWork,
    PointTransactionRepository,
    UserRepository,
)

__all__ = [
    # Entities
    "Cart",
    "CartItem",
    "ProductSnapshot",
    "PointTransaction",
    "PointsSummary",
    "PointsSystemStats",
    "TransactionType",
    "TransactionSource",
    "AuditEvent",
    # Membership
    "MembershipLevel",
    "membership_for_points",
    "points_to_next_level",
    # Repositories
    "UserRepository",
    "CartRepository",
    "PointTransactionRepository",
    "AuditEventRepository",
    "PointsSession",
    "PointsUnitOfWork",
]
