"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/cart.py
============================================================
Class: InMemoryCartRepository

Responsibilities:
  - Implementar CartRepository sobre InMemoryStore.
  - Devolver/guardar copias profundas: mutar el Cart devuelto no toca el store
    hasta llamar save() (misma semántica que Postgres).
============================================================
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from ....domain.entities import Cart
from .store import InMemoryStore


class InMemoryCartRepository:
    def __init__(self, store: InMemoryStore | None = None) -> None:
        self._store = store or InMemoryStore()

    def get_for_user(self, user_id: UUID) -> Optional[Cart]:
        with self._store.lock:
            cart = self._store.carts.get(user_id)
            return self._store.copy_cart(cart) if cart else None

    def get_or_create(self, user_id: UUID) -> Cart:
        with self._store.lock:
            cart = self._store.carts.get(user_id)
            if cart is None:
                now = datetime.now(timezone.utc)
                cart = Cart(user_id=user_id, created_at=now, updated_at=now)
                self._store.carts[user_id] = cart
            return self._store.copy_cart(cart)

    def save(self, cart: Cart) -> Cart:
        with self._store.lock:
            stored = self._store.copy_cart(cart)
            if stored.created_at is None:
                stored.created_at = datetime.now(timezone.utc)
            self._store.carts[cart.user_id] = stored
        return cart

    def list_carts(self, *, limit: int = 20, offset: int = 0) -> List[Cart]:
        if limit <= 0:
            return []
        offset = max(0, offset)
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        with self._store.lock:
            carts = sorted(
                self._store.carts.values(),
                key=lambda c: (c.updated_at or oldest, str(c.id)),
                reverse=True,
            )
            page = carts[offset : offset + limit]
            return [self._store.copy_cart(c) for c in page]

    def count_carts(self) -> int:
        with self._store.lock:
            return len(self._store.carts)
