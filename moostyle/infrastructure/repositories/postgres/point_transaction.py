"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/point_transaction.py
============================================================
Class: PostgresPointTransactionRepository

Responsibilities:
  - Insertar entradas del ledger de puntos (append-only).
  - Listar historial por usuario (más reciente primero) y global (admin).
  - Calcular resumen por usuario y estadísticas del sistema en SQL.

Collaborators:
  - infrastructure.db.pool.get_pool
  - domain.entities.PointTransaction / PointsSummary / PointsSystemStats

Constraints / Notes:
  - Sin UPDATE ni DELETE: solo cascade al borrar el usuario.
  - insert_transaction() recibe una conexión abierta para correr dentro del
    unit of work de puntos.
============================================================
"""

from __future__ import annotations

from typing import Iterable
from uuid import UUID

from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.entities import (
    PointsSummary,
    PointsSystemStats,
    PointTransaction,
    TransactionSource,
    TransactionType,
)
from ....domain.membership import MembershipLevel

_TX_COLUMNS = (
    "id, user_id, points, type, source, description, balance_before, "
    "balance_after, level_before, level_after, metadata, created_at"
)
_TX_ORDER_BY = "created_at DESC, id DESC"

# R: earned = earn + bonus, spent = spend + penalty (valores absolutos).
_EARNED_SQL = "COALESCE(SUM(ABS(points)) FILTER (WHERE type IN ('earn', 'bonus')), 0)"
_SPENT_SQL = "COALESCE(SUM(ABS(points)) FILTER (WHERE type IN ('spend', 'penalty')), 0)"


def _get_pool() -> ConnectionPool:
    from ...db.pool import get_pool

    return get_pool()


def _row_to_transaction(row: tuple) -> PointTransaction:
    try:
        tx_type = TransactionType(row[3])
        source = TransactionSource(row[4])
        level_before = MembershipLevel(row[8])
        level_after = MembershipLevel(row[9])
    except ValueError as exc:
        raise DatabaseError(f"Invalid enum value in point_transactions: {exc}") from exc

    return PointTransaction(
        id=row[0],
        user_id=row[1],
        points=row[2],
        type=tx_type,
        source=source,
        description=row[5],
        balance_before=row[6],
        balance_after=row[7],
        level_before=level_before,
        level_after=level_after,
        metadata=row[10] or {},
        created_at=row[11],
    )


def insert_transaction(conn, tx: PointTransaction) -> None:
    conn.execute(
        f"""
        INSERT INTO point_transactions ({_TX_COLUMNS})
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """,
        (
            tx.id,
            tx.user_id,
            tx.points,
            tx.type.value,
            tx.source.value,
            tx.description,
            tx.balance_before,
            tx.balance_after,
            tx.level_before.value,
            tx.level_after.value,
            Json(tx.metadata),
            tx.created_at,
        ),
    )


class PostgresPointTransactionRepository:
    """Implementa PointTransactionRepository sobre point_transactions."""

    def _query(
        self,
        query: str,
        params: Iterable[object],
        *,
        log_msg: str,
        log_extra: dict[str, object] | None = None,
        fetch_all: bool = True,
    ):
        try:
            with _get_pool().connection() as conn:
                cur = conn.execute(query, tuple(params))
                return cur.fetchall() if fetch_all else cur.fetchone()
        except Exception as exc:
            logger.exception(log_msg, extra={**(log_extra or {}), "error": str(exc)})
            raise DatabaseError(f"{log_msg}: {exc}") from exc

    def record(self, transaction: PointTransaction) -> None:
        log_msg = "PostgresPointTransactionRepository: record failed"
        try:
            with _get_pool().connection() as conn:
                insert_transaction(conn, transaction)
        except Exception as exc:
            logger.exception(
                log_msg,
                extra={"transaction_id": str(transaction.id), "error": str(exc)},
            )
            raise DatabaseError(f"{log_msg}: {exc}") from exc

    def list_for_user(
        self, user_id: UUID, *, limit: int = 50, offset: int = 0
    ) -> list[PointTransaction]:
        if limit <= 0:
            return []
        rows = self._query(
            f"""
            SELECT {_TX_COLUMNS}
            FROM point_transactions
            WHERE user_id = %s
            ORDER BY {_TX_ORDER_BY}
            LIMIT %s OFFSET %s
            """,
            (user_id, limit, max(0, offset)),
            log_msg="PostgresPointTransactionRepository: list_for_user failed",
            log_extra={"user_id": str(user_id)},
        )
        return [_row_to_transaction(r) for r in rows]

    def count_for_user(self, user_id: UUID, *, source: str | None = None) -> int:
        query = "SELECT COUNT(*) FROM point_transactions WHERE user_id = %s"
        params: list[object] = [user_id]
        if source is not None:
            query += " AND source = %s"
            params.append(source)
        row = self._query(
            query,
            params,
            log_msg="PostgresPointTransactionRepository: count_for_user failed",
            log_extra={"user_id": str(user_id), "source": source},
            fetch_all=False,
        )
        return int(row[0]) if row else 0

    def summary_for_user(self, user_id: UUID) -> PointsSummary:
        row = self._query(
            f"""
            SELECT {_EARNED_SQL}, {_SPENT_SQL}, COUNT(*)
            FROM point_transactions
            WHERE user_id = %s
            """,
            (user_id,),
            log_msg="PostgresPointTransactionRepository: summary_for_user failed",
            log_extra={"user_id": str(user_id)},
            fetch_all=False,
        )
        if not row:
            return PointsSummary()
        return PointsSummary(
            total_earned=int(row[0]),
            total_spent=int(row[1]),
            transaction_count=int(row[2]),
        )

    def list_transactions(
        self, *, limit: int = 20, offset: int = 0
    ) -> list[PointTransaction]:
        if limit <= 0:
            return []
        rows = self._query(
            f"""
            SELECT {_TX_COLUMNS}
            FROM point_transactions
            ORDER BY {_TX_ORDER_BY}
            LIMIT %s OFFSET %s
            """,
            (limit, max(0, offset)),
            log_msg="PostgresPointTransactionRepository: list_transactions failed",
        )
        return [_row_to_transaction(r) for r in rows]

    def count_transactions(self) -> int:
        row = self._query(
            "SELECT COUNT(*) FROM point_transactions",
            (),
            log_msg="PostgresPointTransactionRepository: count_transactions failed",
            fetch_all=False,
        )
        return int(row[0]) if row else 0

    def system_stats(self) -> PointsSystemStats:
        row = self._query(
            f"""
            SELECT COUNT(*), {_EARNED_SQL}, {_SPENT_SQL}, COUNT(DISTINCT user_id)
            FROM point_transactions
            """,
            (),
            log_msg="PostgresPointTransactionRepository: system_stats failed",
            fetch_all=False,
        )
        if not row:
            return PointsSystemStats()
        return PointsSystemStats(
            total_transactions=int(row[0]),
            total_points_earned=int(row[1]),
            total_points_spent=int(row[2]),
            unique_users=int(row[3]),
        )
