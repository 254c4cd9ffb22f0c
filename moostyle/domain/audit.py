"""
===============================================================================
TARJETA CRC — domain/audit.py
===============================================================================

Módulo:
    Eventos de auditoría de MooStyle (tabla audit_events)

Responsabilidades:
    - Definir AuditEvent (append-only) y el catálogo de acciones auditadas.
    - Clasificar acciones: admin vs. usuario, y cuáles tocan puntos.

Colaboradores:
    - domain.repositories.AuditEventRepository: persiste y lista eventos.
    - moostyle/audit.py: emisión best-effort desde los routers.

Notas:
    - Las acciones usan prefijos con punto ("admin.user.ban") para poder
      filtrar por familia con action_prefix.
    - Complementa los archivos JSON-line del audit trail (operaciones HTTP).
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Final
from uuid import UUID

ANONYMOUS_ACTOR: Final[str] = "anonymous"

# Acciones de cuenta
AUTH_REGISTER: Final[str] = "auth.register"
AUTH_LOGIN: Final[str] = "auth.login"
AUTH_PASSWORD_CHANGED: Final[str] = "auth.password_changed"

# Acciones de carrito
CART_DOWNLOAD: Final[str] = "cart.download"

# Acciones admin
ADMIN_PREFIX: Final[str] = "admin."
ADMIN_USER_UPDATE: Final[str] = "admin.user.update"
ADMIN_USER_ROLE: Final[str] = "admin.user.role"
ADMIN_USER_BAN: Final[str] = "admin.user.ban"
ADMIN_USER_UNBAN: Final[str] = "admin.user.unban"
ADMIN_USER_DELETE: Final[str] = "admin.user.delete"
ADMIN_RECOVERY_EXECUTE: Final[str] = "admin.recovery.execute"
ADMIN_BACKUP_CREATE: Final[str] = "admin.backup.create"

# R: acciones que pueden mover el saldo de puntos de un usuario.
POINTS_ACTIONS: Final[frozenset[str]] = frozenset({CART_DOWNLOAD, ADMIN_USER_UPDATE})


def actor_for(role: str, user_id: UUID) -> str:
    """Formato estable "<rol>:<uuid>"; el filtro por actor compara el sufijo."""
    return f"{role}:{user_id}"


@dataclass(slots=True)
class AuditEvent:
    id: UUID
    actor: str
    action: str
    target_id: UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None

    @property
    def is_admin_action(self) -> bool:
        return self.action.startswith(ADMIN_PREFIX)

    @property
    def touches_points(self) -> bool:
        return self.action in POINTS_ACTIONS

    @property
    def actor_id(self) -> str | None:
        """UUID del actor como string (None para anónimos)."""
        if self.actor == ANONYMOUS_ACTOR or ":" not in self.actor:
            return None
        return self.actor.split(":", 1)[1]
