"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/user.py
============================================================
Class: PostgresUserRepository

Responsibilities:
  - Cargar usuarios (por id / email / username) para auth, carrito y admin.
  - Crear usuarios y persistir sus campos mutables (perfil, puntos, ban, rol).
  - Listar/contar usuarios con búsqueda case-insensitive (panel admin).
  - Borrar un usuario con su carrito y transacciones en una sola transacción.
  - Mapear filas crudas -> entidad de dominio `User` validando enums.

Collaborators:
  - infrastructure.db.pool.get_pool (pool global instrumentado)
  - identity.users.User / UserRole
  - domain.membership.MembershipLevel
  - crosscutting.exceptions.DatabaseError

Constraints / Notes:
  - Repositorio puro: NO define reglas de negocio (unicidad la chequea el caso de uso;
    la constraint de la tabla es la última barrera).
  - Retorna None cuando no existe el recurso.
  - SQL parametrizado siempre.
  - Orden estable en listados: created_at DESC, id DESC.
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.membership import MembershipLevel
from ....identity.users import User, UserRole, default_notification_settings

# ============================================================
# Constantes y contratos de SQL
# ============================================================
# R: Lista explícita de columnas: el orden es el contrato de row_to_user().
USER_COLUMNS = (
    "id, email, username, password_hash, role, is_active, name, points, "
    "membership_level, notification_settings, last_download_at, last_login_at, "
    "ban_reason, banned_at, created_at, updated_at"
)

_USER_ORDER_BY = "created_at DESC, id DESC"

_SEARCH_CLAUSE = "(email ILIKE %s OR username ILIKE %s OR COALESCE(name, '') ILIKE %s)"


def _get_pool() -> ConnectionPool:
    from ...db.pool import get_pool

    return get_pool()


# ============================================================
# Helpers internos: mapping + ejecución
# ============================================================
def row_to_user(row: tuple) -> User:
    """
    Convierte una fila de `users` a `User`.

    Enums estrictos: un valor desconocido en DB es drift de esquema -> DatabaseError.
    """
    try:
        role = UserRole(row[4])
        level = MembershipLevel(row[8])
    except ValueError as exc:
        raise DatabaseError(f"Invalid enum value in users row: {exc}") from exc

    return User(
        id=row[0],
        email=row[1],
        username=row[2],
        password_hash=row[3],
        role=role,
        is_active=row[5],
        name=row[6],
        points=row[7],
        membership_level=level,
        notification_settings=row[9] or default_notification_settings(),
        last_download_at=row[10],
        last_login_at=row[11],
        ban_reason=row[12],
        banned_at=row[13],
        created_at=row[14],
        updated_at=row[15],
    )


def update_user_row(conn, user: User) -> tuple | None:
    """UPDATE de todos los campos mutables sobre una conexión abierta."""
    return conn.execute(
        f"""
        UPDATE users
        SET email = %s,
            username = %s,
            password_hash = %s,
            role = %s,
            is_active = %s,
            name = %s,
            points = %s,
            membership_level = %s,
            notification_settings = %s,
            last_download_at = %s,
            ban_reason = %s,
            banned_at = %s,
            updated_at = now()
        WHERE id = %s
        RETURNING {USER_COLUMNS}
        """,
        (
            user.email,
            user.username,
            user.password_hash,
            user.role.value,
            user.is_active,
            user.name,
            user.points,
            user.membership_level.value,
            Json(user.notification_settings),
            user.last_download_at,
            user.ban_reason,
            user.banned_at,
            user.id,
        ),
    ).fetchone()


def _fetchone(
    *,
    query: str,
    params: Iterable[object],
    log_msg: str,
    log_extra: dict[str, object],
) -> tuple | None:
    try:
        pool = _get_pool()
        with pool.connection() as conn:
            return conn.execute(query, tuple(params)).fetchone()
    except Exception as exc:
        logger.exception(log_msg, extra={**log_extra, "error": str(exc)})
        raise DatabaseError(f"{log_msg}: {exc}") from exc


def _fetchall(
    *,
    query: str,
    params: Iterable[object] = (),
    log_msg: str,
    log_extra: dict[str, object],
) -> list[tuple]:
    try:
        pool = _get_pool()
        with pool.connection() as conn:
            return conn.execute(query, tuple(params)).fetchall()
    except Exception as exc:
        logger.exception(log_msg, extra={**log_extra, "error": str(exc)})
        raise DatabaseError(f"{log_msg}: {exc}") from exc


def _search_params(search: str | None) -> tuple[str, tuple[object, ...]]:
    if not search:
        return "", ()
    pattern = f"%{search.strip()}%"
    return f"WHERE {_SEARCH_CLAUSE}", (pattern, pattern, pattern)


# ============================================================
# API del repositorio (funcional)
# ============================================================
def get_user_by_id(user_id: UUID) -> Optional[User]:
    row = _fetchone(
        query=f"SELECT {USER_COLUMNS} FROM users WHERE id = %s",
        params=(user_id,),
        log_msg="PostgresUserRepository: get_user_by_id failed",
        log_extra={"user_id": str(user_id)},
    )
    return row_to_user(row) if row else None


def get_user_by_email(email: str) -> Optional[User]:
    """Lookup exacto: el email ya llega normalizado (lower/trim) desde auth."""
    row = _fetchone(
        query=f"SELECT {USER_COLUMNS} FROM users WHERE email = %s",
        params=(email,),
        log_msg="PostgresUserRepository: get_user_by_email failed",
        log_extra={"email": email},
    )
    return row_to_user(row) if row else None


def get_user_by_username(username: str) -> Optional[User]:
    row = _fetchone(
        query=f"SELECT {USER_COLUMNS} FROM users WHERE lower(username) = lower(%s)",
        params=(username,),
        log_msg="PostgresUserRepository: get_user_by_username failed",
        log_extra={"username": username},
    )
    return row_to_user(row) if row else None


def create_user(user: User) -> User:
    """
    Inserta el usuario.

    Un email/username duplicado viola uq_users_* y se envuelve en DatabaseError.
    """
    row = _fetchone(
        query=f"""
            INSERT INTO users (
                id, email, username, password_hash, role, is_active, name,
                points, membership_level, notification_settings
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {USER_COLUMNS}
        """,
        params=(
            user.id,
            user.email,
            user.username,
            user.password_hash,
            user.role.value,
            user.is_active,
            user.name,
            user.points,
            user.membership_level.value,
            Json(user.notification_settings),
        ),
        log_msg="PostgresUserRepository: create_user failed",
        log_extra={"user_id": str(user.id), "email": user.email},
    )
    if not row:
        raise DatabaseError("PostgresUserRepository: create_user returned no row")
    return row_to_user(row)


def update_user(user: User) -> User:
    log_msg = "PostgresUserRepository: update_user failed"
    try:
        pool = _get_pool()
        with pool.connection() as conn:
            row = update_user_row(conn, user)
    except Exception as exc:
        logger.exception(log_msg, extra={"user_id": str(user.id), "error": str(exc)})
        raise DatabaseError(f"{log_msg}: {exc}") from exc
    if not row:
        raise DatabaseError(f"{log_msg}: user {user.id} not found")
    return row_to_user(row)


def record_login(user_id: UUID, at: datetime) -> None:
    _fetchone(
        query="UPDATE users SET last_login_at = %s WHERE id = %s RETURNING id",
        params=(at, user_id),
        log_msg="PostgresUserRepository: record_login failed",
        log_extra={"user_id": str(user_id)},
    )


def delete_user(user_id: UUID) -> bool:
    """
    Borra usuario + carrito + transacciones (transacción única).

    Las FKs ya tienen ON DELETE CASCADE; los DELETE explícitos dejan el orden
    visible y no dependen del esquema.
    """
    log_msg = "PostgresUserRepository: delete_user failed"
    try:
        pool = _get_pool()
        with pool.connection() as conn:
            with conn.transaction():
                conn.execute(
                    "DELETE FROM cart_items WHERE cart_id IN "
                    "(SELECT id FROM carts WHERE user_id = %s)",
                    (user_id,),
                )
                conn.execute("DELETE FROM carts WHERE user_id = %s", (user_id,))
                conn.execute(
                    "DELETE FROM point_transactions WHERE user_id = %s", (user_id,)
                )
                row = conn.execute(
                    "DELETE FROM users WHERE id = %s RETURNING id", (user_id,)
                ).fetchone()
    except Exception as exc:
        logger.exception(log_msg, extra={"user_id": str(user_id), "error": str(exc)})
        raise DatabaseError(f"{log_msg}: {exc}") from exc
    return row is not None


def list_users(
    *, search: str | None = None, limit: int = 20, offset: int = 0
) -> list[User]:
    if limit <= 0:
        return []
    offset = max(0, offset)
    where, params = _search_params(search)
    rows = _fetchall(
        query=f"""
            SELECT {USER_COLUMNS}
            FROM users
            {where}
            ORDER BY {_USER_ORDER_BY}
            LIMIT %s OFFSET %s
        """,
        params=(*params, limit, offset),
        log_msg="PostgresUserRepository: list_users failed",
        log_extra={"search": search, "limit": limit, "offset": offset},
    )
    return [row_to_user(r) for r in rows]


def count_users(*, search: str | None = None) -> int:
    where, params = _search_params(search)
    row = _fetchone(
        query=f"SELECT COUNT(*) FROM users {where}",
        params=params,
        log_msg="PostgresUserRepository: count_users failed",
        log_extra={"search": search},
    )
    return int(row[0]) if row else 0


def list_all_users() -> list[User]:
    rows = _fetchall(
        query=f"SELECT {USER_COLUMNS} FROM users ORDER BY {_USER_ORDER_BY}",
        log_msg="PostgresUserRepository: list_all_users failed",
        log_extra={},
    )
    return [row_to_user(r) for r in rows]


def _grouped_counts(column: str, log_msg: str) -> dict[str, int]:
    # column es controlado por código (no input usuario).
    rows = _fetchall(
        query=f"SELECT {column}, COUNT(*) FROM users GROUP BY {column}",
        log_msg=log_msg,
        log_extra={"column": column},
    )
    return {str(key): int(count) for key, count in rows}


def role_counts() -> dict[str, int]:
    counts = {role.value: 0 for role in UserRole}
    counts.update(_grouped_counts("role", "PostgresUserRepository: role_counts failed"))
    return counts


def status_counts() -> dict[str, int]:
    raw = _grouped_counts("is_active", "PostgresUserRepository: status_counts failed")
    return {"active": raw.get("True", 0), "banned": raw.get("False", 0)}


def membership_distribution() -> dict[str, int]:
    counts = {level.value: 0 for level in MembershipLevel}
    counts.update(
        _grouped_counts(
            "membership_level", "PostgresUserRepository: membership_distribution failed"
        )
    )
    return counts


def total_points() -> int:
    row = _fetchone(
        query="SELECT COALESCE(SUM(points), 0) FROM users",
        params=(),
        log_msg="PostgresUserRepository: total_points failed",
        log_extra={},
    )
    return int(row[0]) if row else 0


# ============================================================
# Clase wrapper (para consistencia con otros repositorios)
# ============================================================
class PostgresUserRepository:
    """Wrapper OO sobre las funciones del módulo (implementa UserRepository)."""

    def get_by_id(self, user_id: UUID) -> Optional[User]:
        return get_user_by_id(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return get_user_by_email(email)

    def get_by_username(self, username: str) -> Optional[User]:
        return get_user_by_username(username)

    def create(self, user: User) -> User:
        return create_user(user)

    def update(self, user: User) -> User:
        return update_user(user)

    def record_login(self, user_id: UUID, at: datetime) -> None:
        record_login(user_id, at)

    def delete(self, user_id: UUID) -> bool:
        return delete_user(user_id)

    def list_users(
        self, *, search: str | None = None, limit: int = 20, offset: int = 0
    ) -> list[User]:
        return list_users(search=search, limit=limit, offset=offset)

    def count_users(self, *, search: str | None = None) -> int:
        return count_users(search=search)

    def list_all(self) -> list[User]:
        return list_all_users()

    def role_counts(self) -> dict[str, int]:
        return role_counts()

    def status_counts(self) -> dict[str, int]:
        return status_counts()

    def membership_distribution(self) -> dict[str, int]:
        return membership_distribution()

    def total_points(self) -> int:
        return total_points()
