"""
===============================================================================
CRC CARD — infrastructure/db/instrumentation.py
===============================================================================

Clases:
  - TimedConnection: proxy de conexión que mide cada execute().
  - InstrumentedConnectionPool: facade del pool que entrega TimedConnection.

Responsabilidades:
  - Etiquetar cada sentencia por verbo y tabla de MooStyle (users, carts,
    cart_items, point_transactions, audit_events) para el histograma de
    Prometheus. Los SELECT ... FOR UPDATE de la descarga tienen verbo propio:
    ahí se ve la espera por el lock de la fila del usuario.
  - Loguear sentencias lentas (umbral db_slow_query_ms).
  - Healthcheck al adquirir (rollback + SELECT 1).

Colaboradores:
  - crosscutting.metrics.observe_db_query_duration
  - crosscutting.config (db_slow_query_ms, db_healthcheck_on_acquire)
===============================================================================
"""

from __future__ import annotations

import re
import time
from typing import Any, ContextManager

from ...crosscutting.logger import logger
from ...crosscutting.metrics import observe_db_query_duration
from .errors import DatabaseConnectionError

KNOWN_TABLES = (
    "point_transactions",
    "audit_events",
    "cart_items",
    "carts",
    "users",
)

_TABLE_RE = re.compile(r"\b(?:from|into|update|join)\s+(\w+)", re.IGNORECASE)
_FOR_UPDATE_RE = re.compile(r"\bfor\s+update\b", re.IGNORECASE)


def describe_statement(sql: Any) -> tuple[str, str]:
    """(verbo, tabla) con cardinalidad acotada; "other" si no es una tabla conocida."""
    text = str(sql)
    parts = text.split(None, 1)
    kind = parts[0].upper() if parts else "UNKNOWN"
    if kind == "SELECT" and _FOR_UPDATE_RE.search(text):
        kind = "SELECT_FOR_UPDATE"
    match = _TABLE_RE.search(text)
    table = match.group(1).lower() if match else ""
    return kind, table if table in KNOWN_TABLES else "other"


class TimedConnection:
    def __init__(self, inner_conn, *, slow_query_seconds: float) -> None:
        self._conn = inner_conn
        self._slow = slow_query_seconds

    def execute(self, sql, *args, **kwargs):
        start = time.perf_counter()
        try:
            return self._conn.execute(sql, *args, **kwargs)
        finally:
            elapsed = time.perf_counter() - start
            kind, table = describe_statement(sql)
            observe_db_query_duration(kind, table, elapsed)
            if elapsed >= self._slow:
                logger.warning(
                    "Sentencia DB lenta",
                    extra={"kind": kind, "table": table, "seconds": round(elapsed, 4)},
                )

    def __getattr__(self, item: str):
        return getattr(self._conn, item)


class _ConnectionContext(ContextManager[TimedConnection]):
    def __init__(self, inner_ctx, *, slow_query_seconds: float, healthcheck: bool) -> None:
        self._inner_ctx = inner_ctx
        self._slow = slow_query_seconds
        self._healthcheck = healthcheck

    def __enter__(self) -> TimedConnection:
        try:
            conn = self._inner_ctx.__enter__()
            if self._healthcheck:
                # R: una transacción abortada por el request anterior no se hereda.
                conn.rollback()
                conn.execute("SELECT 1")
        except Exception as exc:
            raise DatabaseConnectionError("Could not acquire a database connection") from exc
        return TimedConnection(conn, slow_query_seconds=self._slow)

    def __exit__(self, exc_type, exc, tb) -> bool:
        return self._inner_ctx.__exit__(exc_type, exc, tb)


class InstrumentedConnectionPool:
    """Los repos siguen usando `with pool.connection() as conn`; conn viene medido."""

    def __init__(
        self,
        inner_pool,
        *,
        slow_query_seconds: float | None = None,
        healthcheck: bool | None = None,
    ) -> None:
        if slow_query_seconds is None or healthcheck is None:
            from ...crosscutting.config import get_settings

            settings = get_settings()
            if slow_query_seconds is None:
                slow_query_seconds = settings.db_slow_query_ms / 1000
            if healthcheck is None:
                healthcheck = settings.db_healthcheck_on_acquire
        self._pool = inner_pool
        self._slow_seconds = slow_query_seconds
        self._healthcheck = healthcheck

    def connection(self, *args, **kwargs) -> ContextManager[TimedConnection]:
        return _ConnectionContext(
            self._pool.connection(*args, **kwargs),
            slow_query_seconds=self._slow_seconds,
            healthcheck=self._healthcheck,
        )

    def __getattr__(self, item: str):
        return getattr(self._pool, item)
