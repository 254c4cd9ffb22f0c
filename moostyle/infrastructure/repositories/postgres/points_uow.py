"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/points_uow.py
============================================================
Class: PostgresPointsUnitOfWork / PostgresPointsSession

Responsibilities:
  - Abrir una conexión + transacción para la descarga del carrito (y las
    ediciones de puntos del admin).
  - Bloquear la fila del usuario (SELECT ... FOR UPDATE) antes de leer la
    ventana de descarga: dos requests concurrentes del mismo usuario se serializan.
  - Exponer lecturas/escrituras sobre la MISMA conexión (todo o nada).

Collaborators:
  - postgres.user (USER_COLUMNS, row_to_user, update_user_row)
  - postgres.cart (load_cart, write_cart_items)
  - postgres.point_transaction (insert_transaction)

Constraints / Notes:
  - Salir del `with` sin excepción => COMMIT; cualquier excepción => ROLLBACK.
  - Los fallos de driver se envuelven en DatabaseError; un lock_timeout sobre
    la fila del usuario (descarga concurrente) tiene su propio mensaje.
============================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import UUID

from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.entities import Cart, PointTransaction
from ....identity.users import User
from ...db.errors import is_lock_timeout
from .cart import load_cart, write_cart_items
from .point_transaction import insert_transaction
from .user import USER_COLUMNS, row_to_user, update_user_row


class PostgresPointsSession:
    def __init__(self, conn) -> None:
        self._conn = conn

    def lock_user(self, user_id: UUID) -> Optional[User]:
        row = self._conn.execute(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = %s FOR UPDATE",
            (user_id,),
        ).fetchone()
        return row_to_user(row) if row else None

    def get_cart(self, user_id: UUID) -> Optional[Cart]:
        return load_cart(self._conn, user_id, for_update=True)

    def update_user(self, user: User) -> None:
        if update_user_row(self._conn, user) is None:
            raise DatabaseError(f"User {user.id} disappeared inside transaction")

    def save_cart(self, cart: Cart) -> None:
        write_cart_items(self._conn, cart)

    def record_transaction(self, transaction: PointTransaction) -> None:
        insert_transaction(self._conn, transaction)


class PostgresPointsUnitOfWork:
    def __init__(self, pool: ConnectionPool | None = None) -> None:
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    @contextmanager
    def begin(self) -> Iterator[PostgresPointsSession]:
        try:
            with self._get_pool().connection() as conn:
                with conn.transaction():
                    yield PostgresPointsSession(conn)
        except DatabaseError:
            raise
        except Exception as exc:
            if is_lock_timeout(exc):
                logger.warning(
                    "PostgresPointsUnitOfWork: user row still locked",
                    extra={"error": str(exc)},
                )
                raise DatabaseError(
                    "Another points operation for this user is in progress",
                    original_error=exc,
                ) from exc
            # Solo errores de driver: los del caso de uso no cruzan este borde
            # porque devuelve resultados tipados en vez de lanzar.
            logger.exception(
                "PostgresPointsUnitOfWork: transaction failed",
                extra={"error": str(exc)},
            )
            raise DatabaseError(f"Points transaction failed: {exc}") from exc
