"""
===============================================================================
CRC CARD — infrastructure/db/pool.py
===============================================================================

Componente:
  Pool de conexiones PostgreSQL del proceso

Responsabilidades:
  - Crear el ConnectionPool una sola vez (lifespan) y cerrarlo al apagar.
  - Configurar cada conexión nueva: application_name, statement_timeout y
    lock_timeout (la descarga lockea la fila del usuario con FOR UPDATE).
  - Entregar el pool envuelto en InstrumentedConnectionPool.

Colaboradores:
  - psycopg_pool.ConnectionPool
  - instrumentation.InstrumentedConnectionPool
  - crosscutting.config (db_statement_timeout_ms, db_lock_timeout_ms)

Notas:
  - En APP_ENV=test no se inicializa: los repos son in-memory.
===============================================================================
"""

from __future__ import annotations

import threading
from typing import Optional

from psycopg_pool import ConnectionPool

from ...crosscutting.logger import logger
from .errors import PoolAlreadyInitializedError, PoolNotInitializedError
from .instrumentation import InstrumentedConnectionPool

APPLICATION_NAME = "moostyle-api"

_pool: Optional[InstrumentedConnectionPool] = None
_pool_lock = threading.Lock()


def _session_settings() -> list[str]:
    from ...crosscutting.config import get_settings

    settings = get_settings()
    statements = [f"SET application_name = '{APPLICATION_NAME}'"]
    if settings.db_statement_timeout_ms > 0:
        statements.append(f"SET statement_timeout = {int(settings.db_statement_timeout_ms)}")
    if settings.db_lock_timeout_ms > 0:
        statements.append(f"SET lock_timeout = {int(settings.db_lock_timeout_ms)}")
    return statements


def _configure_connection(conn) -> None:
    for statement in _session_settings():
        conn.execute(statement)
    conn.commit()


def init_pool(database_url: str, min_size: int, max_size: int) -> InstrumentedConnectionPool:
    global _pool

    with _pool_lock:
        if _pool is not None:
            raise PoolAlreadyInitializedError("Database pool already initialized")

        raw_pool = ConnectionPool(
            conninfo=database_url,
            min_size=min_size,
            max_size=max_size,
            configure=_configure_connection,
            name="moostyle",
            open=True,
        )
        _pool = InstrumentedConnectionPool(raw_pool)

    logger.info("Pool DB listo", extra={"min_size": min_size, "max_size": max_size})
    return _pool


def get_pool() -> InstrumentedConnectionPool:
    if _pool is None:
        raise PoolNotInitializedError(
            "Database pool not initialized. Call init_pool() first."
        )
    return _pool


def _discard(*, swallow: bool) -> None:
    global _pool

    with _pool_lock:
        current, _pool = _pool, None
    if current is None:
        return
    try:
        current.close()
    except Exception as exc:
        if not swallow:
            raise
        logger.warning("Error cerrando pool DB", extra={"error": str(exc)})


def close_pool() -> None:
    """Cierra el pool; idempotente. Los errores de close() se propagan."""
    _discard(swallow=False)
    logger.info("Pool DB cerrado")


def reset_pool() -> None:
    """Para tests: descarta el singleton aunque close() falle."""
    _discard(swallow=True)
