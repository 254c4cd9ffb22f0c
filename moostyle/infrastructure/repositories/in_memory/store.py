"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/store.py
============================================================
Class: InMemoryStore

Responsibilities:
  - Ser la "base de datos" compartida por los repositorios in-memory
    (users, carts, point_transactions, audit_events).
  - Proveer un único RLock: es el equivalente al row lock de Postgres para
    el unit of work de puntos.
  - Emular el ON DELETE CASCADE (usuario -> carrito + transacciones).

Constraints / Notes:
  - NOT FOR PRODUCTION: los datos se pierden al reiniciar.
  - Los carritos se guardan como copias profundas (Cart es mutable).
============================================================
"""

from __future__ import annotations

import copy
from threading import RLock
from typing import Dict, List
from uuid import UUID

from ....domain.audit import AuditEvent
from ....domain.entities import Cart, PointTransaction
from ....identity.users import User


class InMemoryStore:
    def __init__(self) -> None:
        self.lock = RLock()
        self.users: Dict[UUID, User] = {}
        self.carts: Dict[UUID, Cart] = {}  # user_id -> Cart
        self.transactions: List[PointTransaction] = []
        self.audit_events: List[AuditEvent] = []

    @staticmethod
    def copy_cart(cart: Cart) -> Cart:
        return copy.deepcopy(cart)

    def delete_user_cascade(self, user_id: UUID) -> bool:
        with self.lock:
            if self.users.pop(user_id, None) is None:
                return False
            self.carts.pop(user_id, None)
            self.transactions = [t for t in self.transactions if t.user_id != user_id]
            return True

    def clear(self) -> None:
        """Testing helper."""
        with self.lock:
            self.users.clear()
            self.carts.clear()
            self.transactions.clear()
            self.audit_events.clear()
