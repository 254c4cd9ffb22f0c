"""
===============================================================================
CRC CARD — infrastructure/db/errors.py
===============================================================================

Componente:
  Errores del pool y clasificación de errores de Postgres

Responsabilidades:
  - Distinguir fallos del ciclo de vida del pool (init doble, uso sin init,
    conexión no disponible).
  - Reconocer el timeout de lock de fila (SQLSTATE 55P03) que produce una
    descarga concurrente del mismo usuario.

Notas:
  - Heredan de RuntimeError: el lifespan y los scripts los tratan igual.
===============================================================================
"""

from __future__ import annotations

LOCK_NOT_AVAILABLE = "55P03"
QUERY_CANCELED = "57014"


class DatabasePoolError(RuntimeError):
    pass


class PoolAlreadyInitializedError(DatabasePoolError):
    """init_pool() llamado dos veces en el mismo proceso."""


class PoolNotInitializedError(DatabasePoolError):
    """get_pool() antes de init_pool() (o después de close_pool())."""


class DatabaseConnectionError(DatabasePoolError):
    """No se pudo obtener o validar una conexión del pool."""


def sqlstate_of(exc: BaseException) -> str | None:
    return getattr(exc, "sqlstate", None)


def is_lock_timeout(exc: BaseException) -> bool:
    """True si la fila seguía lockeada al vencer lock_timeout o statement_timeout."""
    return sqlstate_of(exc) in (LOCK_NOT_AVAILABLE, QUERY_CANCELED)
