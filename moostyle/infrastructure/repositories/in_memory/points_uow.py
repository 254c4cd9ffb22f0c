"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/points_uow.py
============================================================
Class: InMemoryPointsUnitOfWork / InMemoryPointsSession

Responsibilities:
  - Emular la transacción de puntos: el lock del store se toma en begin()
    y se libera al salir (serializa descargas concurrentes).
  - Acumular escrituras (usuario, carrito, transacción) y aplicarlas juntas
    solo si el bloque termina sin excepción.
============================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterator, List, Optional
from uuid import UUID

from ....domain.entities import Cart, PointTransaction
from ....identity.users import User
from .store import InMemoryStore


class InMemoryPointsSession:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store
        self._users: dict[UUID, User] = {}
        self._carts: dict[UUID, Cart] = {}
        self._transactions: List[PointTransaction] = []

    def lock_user(self, user_id: UUID) -> Optional[User]:
        return self._users.get(user_id) or self._store.users.get(user_id)

    def get_cart(self, user_id: UUID) -> Optional[Cart]:
        staged = self._carts.get(user_id)
        if staged is not None:
            return self._store.copy_cart(staged)
        cart = self._store.carts.get(user_id)
        return self._store.copy_cart(cart) if cart else None

    def update_user(self, user: User) -> None:
        self._users[user.id] = user

    def save_cart(self, cart: Cart) -> None:
        self._carts[cart.user_id] = self._store.copy_cart(cart)

    def record_transaction(self, transaction: PointTransaction) -> None:
        self._transactions.append(transaction)

    def commit(self) -> None:
        now = datetime.now(timezone.utc)
        for user_id, user in self._users.items():
            current = self._store.users.get(user_id)
            self._store.users[user_id] = replace(
                user,
                created_at=current.created_at if current else user.created_at,
                updated_at=now,
            )
        self._store.carts.update(self._carts)
        self._store.transactions.extend(self._transactions)


class InMemoryPointsUnitOfWork:
    def __init__(self, store: InMemoryStore | None = None) -> None:
        self._store = store or InMemoryStore()

    @contextmanager
    def begin(self) -> Iterator[InMemoryPointsSession]:
        with self._store.lock:
            session = InMemoryPointsSession(self._store)
            yield session
            session.commit()
