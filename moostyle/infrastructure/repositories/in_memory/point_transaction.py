"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/point_transaction.py
============================================================
Class: InMemoryPointTransactionRepository

Responsibilities:
  - Ledger append-only en memoria (tests / dev).
  - Orden newest-first alineado con Postgres (created_at DESC).
============================================================
"""

from __future__ import annotations

from typing import List
from uuid import UUID

from ....domain.entities import (
    DEBIT_TYPES,
    CREDIT_TYPES,
    PointsSummary,
    PointsSystemStats,
    PointTransaction,
)
from .store import InMemoryStore


class InMemoryPointTransactionRepository:
    def __init__(self, store: InMemoryStore | None = None) -> None:
        self._store = store or InMemoryStore()

    def _newest_first(self, items: List[PointTransaction]) -> List[PointTransaction]:
        return sorted(items, key=lambda t: (t.created_at, str(t.id)), reverse=True)

    def record(self, transaction: PointTransaction) -> None:
        with self._store.lock:
            self._store.transactions.append(transaction)

    def list_for_user(
        self, user_id: UUID, *, limit: int = 50, offset: int = 0
    ) -> List[PointTransaction]:
        if limit <= 0:
            return []
        offset = max(0, offset)
        with self._store.lock:
            mine = [t for t in self._store.transactions if t.user_id == user_id]
        return self._newest_first(mine)[offset : offset + limit]

    def count_for_user(self, user_id: UUID, *, source: str | None = None) -> int:
        with self._store.lock:
            return sum(
                1
                for t in self._store.transactions
                if t.user_id == user_id and (source is None or t.source.value == source)
            )

    def summary_for_user(self, user_id: UUID) -> PointsSummary:
        with self._store.lock:
            mine = [t for t in self._store.transactions if t.user_id == user_id]
        return PointsSummary.from_transactions(mine)

    def list_transactions(
        self, *, limit: int = 20, offset: int = 0
    ) -> List[PointTransaction]:
        if limit <= 0:
            return []
        offset = max(0, offset)
        with self._store.lock:
            items = list(self._store.transactions)
        return self._newest_first(items)[offset : offset + limit]

    def count_transactions(self) -> int:
        with self._store.lock:
            return len(self._store.transactions)

    def system_stats(self) -> PointsSystemStats:
        with self._store.lock:
            items = list(self._store.transactions)
        return PointsSystemStats(
            total_transactions=len(items),
            total_points_earned=sum(abs(t.points) for t in items if t.type in CREDIT_TYPES),
            total_points_spent=sum(abs(t.points) for t in items if t.type in DEBIT_TYPES),
            unique_users=len({t.user_id for t in items}),
        )
