"""
===============================================================================
TARJETA CRC — moostyle/audit.py (Emisión de eventos de auditoría)
===============================================================================

Responsabilidades:
  - Armar AuditEvent para acciones de cuenta, descargas y panel admin.
  - Derivar actor ("<rol>:<uuid>") y metadata mínima del User que actúa.
  - Persistir vía AuditEventRepository sin romper el request si falla.

Colaboradores:
  - domain.audit (AuditEvent, actor_for, ANONYMOUS_ACTOR)
  - domain.repositories.AuditEventRepository
  - identity.users.User

Notas:
  - No guardamos email ni username: el actor ya identifica al usuario.
  - Los valores no serializables (datetime, enums, objetos) se guardan como str.
===============================================================================
"""

from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from .crosscutting.logger import logger
from .domain.audit import ANONYMOUS_ACTOR, AuditEvent, actor_for
from .domain.repositories import AuditEventRepository
from .identity.users import User


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return _jsonable(value.value)
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    return str(value)


def _actor_metadata(user: User | None) -> dict[str, Any]:
    if user is None:
        return {"actor_type": ANONYMOUS_ACTOR}
    return {
        "actor_type": "admin" if user.is_admin else "user",
        "role": user.role.value,
        "membership_level": user.membership_level.value,
    }


def emit_audit_event(
    repository: AuditEventRepository | None,
    *,
    action: str,
    user: User | None = None,
    actor: str | None = None,
    target_id: UUID | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditEvent | None:
    """
    Persiste un evento de auditoría (best-effort).

    Retorna el evento armado, o None si no había repositorio.
    Un fallo de escritura se loguea como warning y no se propaga.
    """
    if repository is None:
        return None

    event = AuditEvent(
        id=uuid4(),
        actor=actor
        or (actor_for(user.role.value, user.id) if user else ANONYMOUS_ACTOR),
        action=action,
        target_id=target_id,
        metadata=_jsonable({**_actor_metadata(user), **(metadata or {})}),
    )

    try:
        repository.record_event(event)
    except Exception as exc:
        logger.warning(
            "No se pudo persistir el evento de auditoría",
            extra={"action": action, "error": str(exc)},
        )
    return event
