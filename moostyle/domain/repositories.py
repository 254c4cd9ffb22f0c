"""
CRC — domain/repositories.py

Name
- Domain Repository Interfaces (Protocols)

Responsibilities
- Define persistence contracts for users, carts, the point ledger and audit events.
- Define the points unit of work: the transactional seam the download flow
  (and admin point edits) run inside.
- Keep application/domain independent from infrastructure (PostgreSQL, in-memory).

Collaborators
- identity.users: User
- domain.entities: Cart, PointTransaction, PointsSummary, PointsSystemStats
- domain.audit: AuditEvent
- infrastructure.repositories: postgres/* and in_memory/* implementations

Constraints
- Pure interfaces only: no side effects, no SQL.
- Implementations MUST match method signatures exactly.
- Every write in a PointsSession becomes visible only when the session's
  context exits without an exception (all-or-nothing).

Notes
- We use typing.Protocol for structural subtyping ("duck typing").
- Outputs are concrete lists for predictable iteration/serialization.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, ContextManager, List, Optional, Protocol
from uuid import UUID

from .audit import AuditEvent
from .entities import Cart, PointTransaction, PointsSummary, PointsSystemStats

if TYPE_CHECKING:
    from ..identity.users import User


class UserRepository(Protocol):
    """
    R: Interface for user accounts.

    Lookups return None when the user does not exist. Emails are stored
    normalized (lowercase) by the callers.
    """

    def get_by_id(self, user_id: UUID) -> Optional["User"]:
        ...

    def get_by_email(self, email: str) -> Optional["User"]:
        ...

    def get_by_username(self, username: str) -> Optional["User"]:
        ...

    def create(self, user: "User") -> "User":
        """R: Insert a new user (and nothing else)."""
        ...

    def update(self, user: "User") -> "User":
        """R: Persist every mutable field of `user` and return the stored copy."""
        ...

    def record_login(self, user_id: UUID, at: datetime) -> None:
        ...

    def delete(self, user_id: UUID) -> bool:
        """
        R: Delete the user together with their cart and point transactions.

        Must be a single transaction. Returns False when the user did not exist.
        """
        ...

    def list_users(
        self,
        *,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List["User"]:
        """R: Newest first; `search` matches email/username/name case-insensitively."""
        ...

    def count_users(self, *, search: str | None = None) -> int:
        ...

    def list_all(self) -> List["User"]:
        """R: Every user (backups, bulk maintenance)."""
        ...

    def role_counts(self) -> dict[str, int]:
        ...

    def status_counts(self) -> dict[str, int]:
        """R: {"active": n, "banned": m}."""
        ...

    def membership_distribution(self) -> dict[str, int]:
        ...

    def total_points(self) -> int:
        ...


class CartRepository(Protocol):
    """R: Interface for carts (one per user)."""

    def get_for_user(self, user_id: UUID) -> Optional[Cart]:
        ...

    def get_or_create(self, user_id: UUID) -> Cart:
        ...

    def save(self, cart: Cart) -> Cart:
        """R: Replace the stored items of `cart` with its current items."""
        ...

    def list_carts(self, *, limit: int = 20, offset: int = 0) -> List[Cart]:
        """R: Most recently updated first."""
        ...

    def count_carts(self) -> int:
        ...


class PointTransactionRepository(Protocol):
    """R: Append-only point ledger."""

    def record(self, transaction: PointTransaction) -> None:
        ...

    def list_for_user(
        self, user_id: UUID, *, limit: int = 50, offset: int = 0
    ) -> List[PointTransaction]:
        """R: Newest first."""
        ...

    def count_for_user(self, user_id: UUID, *, source: str | None = None) -> int:
        ...

    def summary_for_user(self, user_id: UUID) -> PointsSummary:
        ...

    def list_transactions(
        self, *, limit: int = 20, offset: int = 0
    ) -> List[PointTransaction]:
        ...

    def count_transactions(self) -> int:
        ...

    def system_stats(self) -> PointsSystemStats:
        ...


class AuditEventRepository(Protocol):
    """R: Interface for audit event persistence."""

    def record_event(self, event: AuditEvent) -> None:
        """R: Persist an audit event."""
        ...

    def list_events(
        self,
        *,
        actor_id: str | None = None,
        action_prefix: str | None = None,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditEvent]:
        """R: Fetch audit events with optional filters."""
        ...


class PointsSession(Protocol):
    """
    R: Operations available inside one points transaction.

    lock_user() must be called first: it takes the row lock that serializes
    concurrent downloads of the same user.
    """

    def lock_user(self, user_id: UUID) -> Optional["User"]:
        ...

    def get_cart(self, user_id: UUID) -> Optional[Cart]:
        ...

    def update_user(self, user: "User") -> None:
        ...

    def save_cart(self, cart: Cart) -> None:
        ...

    def record_transaction(self, transaction: PointTransaction) -> None:
        ...


class PointsUnitOfWork(Protocol):
    """R: Opens a PointsSession; leaving the context commits, raising rolls back."""

    def begin(self) -> ContextManager[PointsSession]:
        ...
