"""Disaster recovery runbooks (catalog + simulated executor)."""

from .disaster_recovery import (
    RECOVERY_CATALOG,
    DisasterRecovery,
    RecoveryProcedure,
    RecoveryRun,
    RecoveryStep,
)

__all__ = [
    "RECOVERY_CATALOG",
    "DisasterRecovery",
    "RecoveryProcedure",
    "RecoveryRun",
    "RecoveryStep",
]
