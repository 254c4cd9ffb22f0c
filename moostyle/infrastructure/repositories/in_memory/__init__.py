"""
In-Memory Repository Implementations.

For testing and local development. NOT FOR PRODUCTION.
Data is lost on process restart. All repositories built over the same
InMemoryStore see the same data.
"""

from .audit_event import InMemoryAuditEventRepository
from .cart import InMemoryCartRepository
from .point_transaction import InMemoryPointTransactionRepository
from .points_uow import InMemoryPointsSession, InMemoryPointsUnitOfWork
from .store import InMemoryStore
from .user import InMemoryUserRepository

__all__ = [
    "InMemoryStore",
    "InMemoryUserRepository",
    "InMemoryCartRepository",
    "InMemoryPointTransactionRepository",
    "InMemoryAuditEventRepository",
    "InMemoryPointsUnitOfWork",
    "InMemoryPointsSession",
]
