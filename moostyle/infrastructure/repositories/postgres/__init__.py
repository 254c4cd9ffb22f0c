"""
PostgreSQL Repository Implementations.

Production implementations using psycopg 3 + psycopg_pool (SQL parametrizado).
"""

from .audit_event import PostgresAuditEventRepository
from .cart import PostgresCartRepository
from .point_transaction import PostgresPointTransactionRepository
from .points_uow import PostgresPointsUnitOfWork
from .user import PostgresUserRepository

__all__ = [
    "PostgresAuditEventRepository",
    "PostgresCartRepository",
    "PostgresPointTransactionRepository",
    "PostgresPointsUnitOfWork",
    "PostgresUserRepository",
]
