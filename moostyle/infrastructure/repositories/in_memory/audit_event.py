"""
In-memory AuditEventRepository for tests and local development.

NOT FOR PRODUCTION USE - data is lost on restart.
"""

from __future__ import annotations

from datetime import datetime, timezone

from ....domain.audit import AuditEvent
from .store import InMemoryStore


class InMemoryAuditEventRepository:
    def __init__(self, store: InMemoryStore | None = None) -> None:
        self._store = store or InMemoryStore()

    def record_event(self, event: AuditEvent) -> None:
        if event.created_at is None:
            event.created_at = datetime.now(timezone.utc)
        with self._store.lock:
            self._store.audit_events.append(event)

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
        if limit <= 0:
            return []
        with self._store.lock:
            results = list(self._store.audit_events)

        if actor_id:
            if ":" in actor_id:
                results = [e for e in results if e.actor == actor_id]
            else:
                results = [e for e in results if e.actor.endswith(f":{actor_id}")]
        if action_prefix:
            results = [e for e in results if e.action.startswith(action_prefix)]
        if start_at is not None:
            results = [e for e in results if e.created_at and e.created_at >= start_at]
        if end_at is not None:
            results = [e for e in results if e.created_at and e.created_at <= end_at]

        results.sort(key=lambda e: (e.created_at, str(e.id)), reverse=True)
        offset = max(0, offset)
        return results[offset : offset + limit]
