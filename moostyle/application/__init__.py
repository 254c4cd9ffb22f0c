"""
===============================================================================
APPLICATION LAYER (Public API / Exports)
===============================================================================

Expone los servicios de aplicación compartidos:
  - security: logs JSON-line, detección de patrones sospechosos, métricas,
    audit trail
  - recovery: runbooks de disaster recovery
  - backup: backups cifrados

Nota:
  - Los casos de uso se importan desde `usecases/` subdirectories.
===============================================================================
"""

from .backup import BackupResult, BackupService, BackupType
from .recovery import DisasterRecovery
from .security import (
    AuditTrail,
    SecurityLogWriter,
    SecurityMetrics,
    detect_suspicious_activity,
    sanitize_request_data,
)

__all__ = [
    # Security
    "AuditTrail",
    "SecurityLogWriter",
    "SecurityMetrics",
    "detect_suspicious_activity",
    "sanitize_request_data",
    # Recovery
    "DisasterRecovery",
    # Backup
    "BackupResult",
    "BackupService",
    "BackupType",
]
