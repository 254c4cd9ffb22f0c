"""
===============================================================================
MÓDULO: Errores internos tipados
===============================================================================

Objetivo
--------
Excepciones internas consistentes, con:
- un error_code estable
- un error_id para correlacionar logs
- un mensaje legible (nunca con secretos)

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  MooStyleError + subclasses

Responsabilidades:
  - Estandarizar errores internos que luego se mapean a HTTP
  - Generar error_id para trazabilidad

Colaboradores:
  - api/exception_handlers.py (mapea a AppHTTPException)
  - infrastructure/repositories/postgres/* (lanzan DatabaseError)
  - application/backup/backup_service.py (lanza BackupError)
===============================================================================
"""

from __future__ import annotations

from uuid import uuid4


class MooStyleError(Exception):
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      MooStyleError

    Responsabilidades:
      - Base de los errores internos del servicio
      - Proveer error_code + error_id + message

    Colaboradores:
      - api/exception_handlers.py
    ----------------------------------------------------------------------------
    """

    error_code: str = "MOOSTYLE_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "error_id": self.error_id,
        }


class DatabaseError(MooStyleError):
    """Errores de DB (conexión, query, timeout, pool)."""

    error_code: str = "DATABASE_ERROR"


class BackupError(MooStyleError):
    """Fallas al crear, cifrar o verificar backups."""

    error_code: str = "BACKUP_ERROR"
