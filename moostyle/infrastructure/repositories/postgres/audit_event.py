"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/audit_event.py
============================================================
Class: PostgresAuditEventRepository

Responsibilities:
  - Persistir eventos de auditoría en PostgreSQL (tabla audit_events).
  - Listar eventos con filtros opcionales (actor, action_prefix, fechas).

Collaborators:
  - domain.audit.AuditEvent
  - psycopg.types.json.Json
  - crosscutting.exceptions.DatabaseError

Constraints / Notes:
  - Repo puro: NO decide qué auditar.
  - actor sigue la convención "<rol>:<uuid>" / "anonymous".
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.audit import AuditEvent


class PostgresAuditEventRepository:
    """Repositorio PostgreSQL para auditoría (audit_events)."""

    def __init__(self, pool: ConnectionPool | None = None):
        # Pool inyectable: tests pueden pasar su pool; prod usa el pool global.
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    def _fetchall(
        self,
        *,
        query: str,
        params: Iterable[object],
        error_message: str,
        extra: dict[str, object],
    ) -> list[tuple]:
        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                return conn.execute(query, tuple(params)).fetchall()
        except Exception as exc:
            logger.exception(error_message, extra={**extra, "error": str(exc)})
            raise DatabaseError(f"{error_message}: {exc}") from exc

    def record_event(self, event: AuditEvent) -> None:
        """Append-only. Los errores se propagan; emit_audit_event decide tragarlos."""
        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                conn.execute(
                    """
                    INSERT INTO audit_events (id, actor, action, target_id, metadata)
                    VALUES (%s, %s, %s, %s, %s)
                    """,
                    (
                        event.id,
                        event.actor,
                        event.action,
                        event.target_id,
                        Json(event.metadata or {}),
                    ),
                )
        except Exception as exc:
            logger.exception(
                "PostgresAuditEventRepository: Failed to record audit event",
                extra={
                    "event_id": str(event.id),
                    "action": event.action,
                    "error": str(exc),
                },
            )
            raise DatabaseError(f"Failed to record audit event: {exc}") from exc

    def list_events(
        self,
        *,
        actor_id: str | None = None,
        action_prefix: str | None = None,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditEvent]:
        """
        Lista eventos con filtros opcionales.

        - actor_id con ":" matchea exacto; sin ":" matchea por sufijo (":<id>").
        - action_prefix: "admin.users." -> LIKE 'admin.users.%'.
        - Rango temporal inclusivo.
        """
        if limit <= 0:
            return []
        offset = max(0, offset)

        conditions: list[str] = []
        params: list[object] = []

        if actor_id:
            if ":" in actor_id:
                conditions.append("actor = %s")
                params.append(actor_id)
            else:
                conditions.append("actor LIKE %s")
                params.append(f"%:{actor_id}")

        if action_prefix:
            conditions.append("action LIKE %s")
            params.append(f"{action_prefix}%")

        if start_at is not None:
            conditions.append("created_at >= %s")
            params.append(start_at)

        if end_at is not None:
            conditions.append("created_at <= %s")
            params.append(end_at)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        rows = self._fetchall(
            query=f"""
                SELECT id, actor, action, target_id, metadata, created_at
                FROM audit_events
                {where_clause}
                ORDER BY created_at DESC, id DESC
                LIMIT %s OFFSET %s
            """,
            params=[*params, limit, offset],
            error_message="PostgresAuditEventRepository: Failed to list audit events",
            extra={"actor_id": actor_id, "action_prefix": action_prefix},
        )

        return [
            AuditEvent(
                id=event_id,
                actor=actor,
                action=action,
                target_id=target_id,
                metadata=metadata or {},
                created_at=created_at,
            )
            for event_id, actor, action, target_id, metadata, created_at in rows
        ]
