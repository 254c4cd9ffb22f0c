"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/cart.py
============================================================
Class: PostgresCartRepository

Responsibilities:
  - Cargar el carrito de un usuario con sus items en orden de inserción.
  - Crear el carrito on-demand (uno por usuario: uq_carts_user_id).
  - Reemplazar items al guardar (DELETE + INSERT dentro de la misma transacción).
  - Listar/contar carritos para el panel admin.

Collaborators:
  - infrastructure.db.pool.get_pool
  - domain.entities.Cart / CartItem / ProductSnapshot
  - psycopg.types.json.Json (snapshot del producto en JSONB)

Constraints / Notes:
  - load_cart()/write_cart_items() operan sobre una conexión abierta: los reusa
    el unit of work de puntos para correr dentro de su transacción.
  - cart_items.position conserva el orden de inserción.
============================================================
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID, uuid4

from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.entities import Cart, CartItem, ProductSnapshot

_CART_COLUMNS = "id, user_id, is_active, created_at, updated_at"
_ITEM_COLUMNS = "cart_id, product, quantity, added_at"


def _get_pool() -> ConnectionPool:
    from ...db.pool import get_pool

    return get_pool()


# ============================================================
# Helpers sobre conexión abierta
# ============================================================
def _row_to_cart(row: tuple, items: list[CartItem]) -> Cart:
    return Cart(
        id=row[0],
        user_id=row[1],
        is_active=row[2],
        created_at=row[3],
        updated_at=row[4],
        items=items,
    )


def _row_to_item(row: tuple) -> CartItem:
    return CartItem(
        product=ProductSnapshot.from_dict(row[1] or {}),
        quantity=row[2],
        added_at=row[3],
    )


def _load_items(conn, cart_ids: list[UUID]) -> dict[UUID, list[CartItem]]:
    grouped: dict[UUID, list[CartItem]] = {cid: [] for cid in cart_ids}
    if not cart_ids:
        return grouped
    rows = conn.execute(
        f"""
        SELECT {_ITEM_COLUMNS}
        FROM cart_items
        WHERE cart_id = ANY(%s)
        ORDER BY position ASC
        """,
        (cart_ids,),
    ).fetchall()
    for row in rows:
        grouped.setdefault(row[0], []).append(_row_to_item(row))
    return grouped


def load_cart(conn, user_id: UUID, *, for_update: bool = False) -> Optional[Cart]:
    lock = " FOR UPDATE" if for_update else ""
    row = conn.execute(
        f"SELECT {_CART_COLUMNS} FROM carts WHERE user_id = %s{lock}",
        (user_id,),
    ).fetchone()
    if not row:
        return None
    items = _load_items(conn, [row[0]])
    return _row_to_cart(row, items[row[0]])


def insert_cart(conn, cart: Cart) -> None:
    conn.execute(
        """
        INSERT INTO carts (id, user_id, is_active)
        VALUES (%s, %s, %s)
        ON CONFLICT (user_id) DO NOTHING
        """,
        (cart.id, cart.user_id, cart.is_active),
    )


def write_cart_items(conn, cart: Cart) -> None:
    """Reemplaza los items persistidos por los del agregado."""
    conn.execute("DELETE FROM cart_items WHERE cart_id = %s", (cart.id,))
    for position, item in enumerate(cart.items):
        conn.execute(
            """
            INSERT INTO cart_items
                (id, cart_id, product_id, product, quantity, position, added_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (
                uuid4(),
                cart.id,
                item.product_id,
                Json(item.product.to_dict()),
                item.quantity,
                position,
                item.added_at,
            ),
        )
    conn.execute(
        "UPDATE carts SET is_active = %s, updated_at = now() WHERE id = %s",
        (cart.is_active, cart.id),
    )


# ============================================================
# Repositorio
# ============================================================
class PostgresCartRepository:
    """Implementa CartRepository sobre carts + cart_items."""

    def _fail(self, msg: str, exc: Exception, **extra: object) -> DatabaseError:
        logger.exception(msg, extra={**extra, "error": str(exc)})
        return DatabaseError(f"{msg}: {exc}")

    def get_for_user(self, user_id: UUID) -> Optional[Cart]:
        try:
            with _get_pool().connection() as conn:
                return load_cart(conn, user_id)
        except Exception as exc:
            raise self._fail(
                "PostgresCartRepository: get_for_user failed", exc, user_id=str(user_id)
            ) from exc

    def get_or_create(self, user_id: UUID) -> Cart:
        try:
            with _get_pool().connection() as conn:
                with conn.transaction():
                    cart = load_cart(conn, user_id)
                    if cart is None:
                        insert_cart(conn, Cart(user_id=user_id))
                        cart = load_cart(conn, user_id)
        except Exception as exc:
            raise self._fail(
                "PostgresCartRepository: get_or_create failed", exc, user_id=str(user_id)
            ) from exc
        if cart is None:
            raise DatabaseError("PostgresCartRepository: cart vanished after insert")
        return cart

    def save(self, cart: Cart) -> Cart:
        try:
            with _get_pool().connection() as conn:
                with conn.transaction():
                    insert_cart(conn, cart)
                    write_cart_items(conn, cart)
        except Exception as exc:
            raise self._fail(
                "PostgresCartRepository: save failed", exc, cart_id=str(cart.id)
            ) from exc
        return cart

    def list_carts(self, *, limit: int = 20, offset: int = 0) -> list[Cart]:
        if limit <= 0:
            return []
        try:
            with _get_pool().connection() as conn:
                rows = conn.execute(
                    f"""
                    SELECT {_CART_COLUMNS}
                    FROM carts
                    ORDER BY updated_at DESC NULLS LAST, id DESC
                    LIMIT %s OFFSET %s
                    """,
                    (limit, max(0, offset)),
                ).fetchall()
                items = _load_items(conn, [r[0] for r in rows])
        except Exception as exc:
            raise self._fail(
                "PostgresCartRepository: list_carts failed", exc, limit=limit
            ) from exc
        return [_row_to_cart(r, items[r[0]]) for r in rows]

    def count_carts(self) -> int:
        try:
            with _get_pool().connection() as conn:
                row = conn.execute("SELECT COUNT(*) FROM carts").fetchone()
        except Exception as exc:
            raise self._fail("PostgresCartRepository: count_carts failed", exc) from exc
        return int(row[0]) if row else 0
