"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/user.py
============================================================
Class: InMemoryUserRepository

Responsibilities:
  - Implementar UserRepository sobre InMemoryStore (tests / dev sin DB).
  - Replicar semántica de Postgres: unicidad de email/username, búsqueda
    case-insensitive, orden created_at DESC, borrado en cascada.

Constraints / Notes:
  - Thread-safe: todo bajo el lock del store.
  - Duplicados -> DatabaseError (igual que la violación de constraint en PG).
============================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from ....crosscutting.exceptions import DatabaseError
from ....domain.membership import MembershipLevel
from ....identity.users import User, UserRole
from .store import InMemoryStore


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _matches(user: User, needle: str) -> bool:
    haystacks = (user.email, user.username, user.name or "")
    return any(needle in value.lower() for value in haystacks)


class InMemoryUserRepository:
    def __init__(self, store: InMemoryStore | None = None) -> None:
        self._store = store or InMemoryStore()

    @property
    def store(self) -> InMemoryStore:
        return self._store

    # --- Lectura ---
    def get_by_id(self, user_id: UUID) -> Optional[User]:
        with self._store.lock:
            return self._store.users.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        with self._store.lock:
            for user in self._store.users.values():
                if user.email == email:
                    return user
        return None

    def get_by_username(self, username: str) -> Optional[User]:
        wanted = username.lower()
        with self._store.lock:
            for user in self._store.users.values():
                if user.username.lower() == wanted:
                    return user
        return None

    # --- Escritura ---
    def create(self, user: User) -> User:
        with self._store.lock:
            for existing in self._store.users.values():
                if existing.email == user.email:
                    raise DatabaseError(f"Duplicate email: {user.email}")
                if existing.username.lower() == user.username.lower():
                    raise DatabaseError(f"Duplicate username: {user.username}")
            now = _now()
            stored = replace(
                user, created_at=user.created_at or now, updated_at=now
            )
            self._store.users[user.id] = stored
            return stored

    def update(self, user: User) -> User:
        with self._store.lock:
            current = self._store.users.get(user.id)
            if current is None:
                raise DatabaseError(f"User {user.id} not found")
            stored = replace(
                user,
                created_at=current.created_at,
                last_login_at=current.last_login_at,
                updated_at=_now(),
            )
            self._store.users[user.id] = stored
            return stored

    def record_login(self, user_id: UUID, at: datetime) -> None:
        with self._store.lock:
            current = self._store.users.get(user_id)
            if current is not None:
                self._store.users[user_id] = replace(current, last_login_at=at)

    def delete(self, user_id: UUID) -> bool:
        return self._store.delete_user_cascade(user_id)

    # --- Listados / agregados (admin) ---
    def _filtered(self, search: str | None) -> List[User]:
        users = list(self._store.users.values())
        if search and search.strip():
            needle = search.strip().lower()
            users = [u for u in users if _matches(u, needle)]
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(
            users,
            key=lambda u: (u.created_at or oldest, str(u.id)),
            reverse=True,
        )

    def list_users(
        self, *, search: str | None = None, limit: int = 20, offset: int = 0
    ) -> List[User]:
        if limit <= 0:
            return []
        offset = max(0, offset)
        with self._store.lock:
            return self._filtered(search)[offset : offset + limit]

    def count_users(self, *, search: str | None = None) -> int:
        with self._store.lock:
            return len(self._filtered(search))

    def list_all(self) -> List[User]:
        with self._store.lock:
            return self._filtered(None)

    def role_counts(self) -> dict[str, int]:
        counts = {role.value: 0 for role in UserRole}
        with self._store.lock:
            for user in self._store.users.values():
                counts[user.role.value] += 1
        return counts

    def status_counts(self) -> dict[str, int]:
        with self._store.lock:
            active = sum(1 for u in self._store.users.values() if u.is_active)
            total = len(self._store.users)
        return {"active": active, "banned": total - active}

    def membership_distribution(self) -> dict[str, int]:
        counts = {level.value: 0 for level in MembershipLevel}
        with self._store.lock:
            for user in self._store.users.values():
                counts[user.membership_level.value] += 1
        return counts

    def total_points(self) -> int:
        with self._store.lock:
            return sum(u.points for u in self._store.users.values())
