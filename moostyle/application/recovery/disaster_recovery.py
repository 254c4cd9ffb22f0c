"""
===============================================================================
TARJETA CRC — application/recovery/disaster_recovery.py
===============================================================================

Clase:
    DisasterRecovery

Responsabilidades:
    - Exponer el catálogo estático de procedimientos de recuperación
      (database / server / security / data).
    - Ejecutar un procedimiento paso a paso (simulado, con delays escalables)
      y devolver un RecoveryRun.
    - Mantener historial en memoria y appendear cada run a
      recovery-procedures.log.
    - Validar el catálogo y generar un reporte para el dashboard admin.

Colaboradores:
    - SecurityLogWriter (recovery-procedures.log)
    - asyncio.sleep (inyectable para tests)

Notas:
    - Los pasos NO ejecutan acciones reales: son un runbook guiado.
    - Un paso fallido se registra; si el procedimiento es CRITICAL, el run
      se aborta.
===============================================================================
"""

from __future__ import annotations

import asyncio
import random
import string
import threading
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from ...crosscutting.logger import logger
from ..security.log_files import SecurityLogWriter

RECOVERY_LOG = "recovery-procedures.log"
HISTORY_LIMIT = 100
REPORT_RECENT = 10

STEP_DELAYS_SECONDS: dict[str, float] = {
    "Check database service status": 1.0,
    "Restart application server": 2.0,
    "Create emergency backup": 3.0,
}
DEFAULT_STEP_DELAY_SECONDS = 0.5


@dataclass(frozen=True, slots=True)
class RecoveryProcedure:
    name: str
    severity: str
    steps: tuple[str, ...]
    automated: bool
    estimated_time: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "severity": self.severity,
            "steps": list(self.steps),
            "automated": self.automated,
            "estimated_time": self.estimated_time,
        }


@dataclass(slots=True)
class RecoveryStep:
    step_number: int
    description: str
    status: str
    started_at: str
    finished_at: str
    duration_ms: int
    error: str | None = None


@dataclass(slots=True)
class RecoveryRun:
    id: str
    category: str
    procedure: str
    severity: str
    started_at: str
    details: dict[str, Any] = field(default_factory=dict)
    steps: list[RecoveryStep] = field(default_factory=list)
    status: str = "IN_PROGRESS"
    finished_at: str | None = None
    duration_ms: int | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status == "COMPLETED"

    @property
    def steps_completed(self) -> int:
        return sum(1 for s in self.steps if s.status == "COMPLETED")

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["success"] = self.success
        data["steps_completed"] = self.steps_completed
        return data


def _procedure(
    name: str, severity: str, automated: bool, estimated: str, *steps: str
) -> RecoveryProcedure:
    return RecoveryProcedure(
        name=name,
        severity=severity,
        steps=tuple(steps),
        automated=automated,
        estimated_time=estimated,
    )


RECOVERY_CATALOG: dict[str, dict[str, RecoveryProcedure]] = {
    "database": {
        "connection_loss": _procedure(
            "connection_loss", "HIGH", True, "5-15 minutes",
            "Check database service status",
            "Verify network connectivity",
            "Check database credentials",
            "Restart database service if needed",
            "Test connection with backup credentials",
            "Notify admin team",
        ),
        "data_corruption": _procedure(
            "data_corruption", "CRITICAL", False, "30-60 minutes",
            "Stop all write operations immediately",
            "Create emergency backup",
            "Restore from latest verified backup",
            "Verify data integrity",
            "Test application functionality",
            "Gradually resume operations",
        ),
        "performance_degradation": _procedure(
            "performance_degradation", "MEDIUM", True, "10-30 minutes",
            "Monitor database performance metrics",
            "Check for long-running queries",
            "Analyze index usage",
            "Optimize slow queries",
            "Consider scaling resources",
            "Document performance issues",
        ),
    },
    "server": {
        "server_crash": _procedure(
            "server_crash", "CRITICAL", True, "5-10 minutes",
            "Check server status and logs",
            "Restart application server",
            "Verify all services are running",
            "Check system resources (CPU, Memory, Disk)",
            "Test critical endpoints",
            "Monitor for recurring issues",
        ),
        "memory_leak": _procedure(
            "memory_leak", "HIGH", True, "10-20 minutes",
            "Monitor memory usage patterns",
            "Identify memory-intensive operations",
            "Restart affected services",
            "Analyze application logs",
            "Implement memory monitoring",
            "Schedule regular restarts if needed",
        ),
        "disk_space": _procedure(
            "disk_space", "HIGH", True, "15-30 minutes",
            "Check disk usage across all partitions",
            "Clean up temporary files",
            "Archive old log files",
            "Remove unnecessary backups",
            "Expand disk space if needed",
            "Implement disk monitoring",
        ),
    },
    "security": {
        "security_breach": _procedure(
            "security_breach", "CRITICAL", False, "1-4 hours",
            "Immediately isolate affected systems",
            "Change all admin passwords",
            "Revoke all active sessions",
            "Analyze security logs for breach details",
            "Notify all users of potential compromise",
            "Implement additional security measures",
            "Document incident for compliance",
        ),
        "ddos_attack": _procedure(
            "ddos_attack", "HIGH", True, "5-15 minutes",
            "Activate DDoS protection",
            "Block suspicious IP addresses",
            "Implement stricter rate limiting",
            "Monitor traffic patterns",
            "Contact hosting provider if needed",
            "Document attack details",
        ),
        "unauthorized_access": _procedure(
            "unauthorized_access", "HIGH", True, "10-30 minutes",
            "Block unauthorized IP addresses",
            "Review access logs",
            "Change compromised credentials",
            "Implement additional authentication",
            "Notify affected users",
            "Strengthen access controls",
        ),
    },
    "data": {
        "data_loss": _procedure(
            "data_loss", "CRITICAL", False, "30-120 minutes",
            "Stop all write operations",
            "Assess data loss scope",
            "Restore from latest backup",
            "Verify data integrity",
            "Test application functionality",
            "Implement additional backup measures",
        ),
        "backup_corruption": _procedure(
            "backup_corruption", "HIGH", True, "15-45 minutes",
            "Verify backup integrity",
            "Try alternative backup sources",
            "Create new backup immediately",
            "Test restore procedures",
            "Document backup issues",
            "Implement backup verification",
        ),
    },
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_recovery_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"RECOVERY_{int(time.time() * 1000)}_{suffix}"


StepRunner = Callable[[str, dict[str, Any]], Awaitable[None]]


class DisasterRecovery:
    def __init__(
        self,
        writer: SecurityLogWriter,
        *,
        delay_scale: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        step_runner: StepRunner | None = None,
        catalog: dict[str, dict[str, RecoveryProcedure]] | None = None,
    ) -> None:
        self._writer = writer
        self._delay_scale = delay_scale
        self._sleep = sleep
        self._step_runner = step_runner or self._simulate_step
        self._catalog = catalog or RECOVERY_CATALOG
        self._history: list[RecoveryRun] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Catálogo
    # ------------------------------------------------------------------
    def get_procedure(self, category: str, name: str) -> RecoveryProcedure | None:
        return self._catalog.get(category, {}).get(name)

    def get_recovery_procedures(self) -> dict[str, dict[str, dict[str, Any]]]:
        return {
            category: {name: proc.to_dict() for name, proc in procs.items()}
            for category, procs in self._catalog.items()
        }

    # ------------------------------------------------------------------
    # Ejecución
    # ------------------------------------------------------------------
    def step_delay(self, step: str) -> float:
        base = STEP_DELAYS_SECONDS.get(step, DEFAULT_STEP_DELAY_SECONDS)
        return base * self._delay_scale

    async def _simulate_step(self, step: str, details: dict[str, Any]) -> None:
        delay = self.step_delay(step)
        if delay > 0:
            await self._sleep(delay)

    async def execute_recovery(
        self,
        category: str,
        procedure_name: str,
        details: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        procedure = self.get_procedure(category, procedure_name)
        if procedure is None:
            return {
                "success": False,
                "error": (
                    f"Recovery procedure not found for {category}:{procedure_name}"
                ),
            }

        details = details or {}
        run = RecoveryRun(
            id=generate_recovery_id(),
            category=category,
            procedure=procedure_name,
            severity=procedure.severity,
            started_at=_now_iso(),
            details=details,
        )
        started = time.monotonic()
        self._log_run(run)

        for number, description in enumerate(procedure.steps, start=1):
            step_started_at = _now_iso()
            step_clock = time.monotonic()
            try:
                await self._step_runner(description, details)
            except Exception as exc:
                run.steps.append(
                    RecoveryStep(
                        step_number=number,
                        description=description,
                        status="FAILED",
                        started_at=step_started_at,
                        finished_at=_now_iso(),
                        duration_ms=int((time.monotonic() - step_clock) * 1000),
                        error=str(exc),
                    )
                )
                logger.warning(
                    "Recovery step failed",
                    extra={"recovery_id": run.id, "step": description, "error": str(exc)},
                )
                if procedure.severity == "CRITICAL":
                    run.error = str(exc)
                    break
                continue

            run.steps.append(
                RecoveryStep(
                    step_number=number,
                    description=description,
                    status="COMPLETED",
                    started_at=step_started_at,
                    finished_at=_now_iso(),
                    duration_ms=int((time.monotonic() - step_clock) * 1000),
                )
            )
            logger.info(
                "Recovery step completed",
                extra={"recovery_id": run.id, "step_number": number},
            )

        run.status = "FAILED" if run.error else "COMPLETED"
        run.finished_at = _now_iso()
        run.duration_ms = int((time.monotonic() - started) * 1000)
        self._log_run(run)

        result: dict[str, Any] = {
            "success": run.success,
            "recovery_id": run.id,
            "duration_ms": run.duration_ms,
            "steps_completed": run.steps_completed,
            "total_steps": len(procedure.steps),
            "run": run.to_dict(),
        }
        if run.error:
            result["error"] = run.error
        return result

    def _log_run(self, run: RecoveryRun) -> None:
        # R: el log guarda inicio y fin; el historial solo runs terminados.
        if run.status != "IN_PROGRESS":
            with self._lock:
                self._history.append(run)
                del self._history[:-HISTORY_LIMIT]
        self._writer.append(RECOVERY_LOG, run.to_dict())

    # ------------------------------------------------------------------
    # Lectura / reportes
    # ------------------------------------------------------------------
    def get_recovery_history(self, limit: int = 50) -> list[dict[str, Any]]:
        with self._lock:
            runs = self._history[-limit:] if limit > 0 else []
            return [r.to_dict() for r in runs]

    def test_recovery_procedures(self) -> dict[str, dict[str, dict[str, Any]]]:
        results: dict[str, dict[str, dict[str, Any]]] = {}
        for category, procs in self._catalog.items():
            results[category] = {}
            for name, proc in procs.items():
                if not proc.steps:
                    results[category][name] = {
                        "available": False,
                        "error": "Procedure has no steps",
                    }
                    continue
                results[category][name] = {
                    "available": True,
                    "severity": proc.severity,
                    "automated": proc.automated,
                    "estimated_time": proc.estimated_time,
                    "step_count": len(proc.steps),
                }
        return results

    def generate_recovery_report(self) -> dict[str, Any]:
        by_severity: dict[str, int] = {}
        by_category: dict[str, int] = {}
        for category, procs in self._catalog.items():
            by_category[category] = len(procs)
            for proc in procs.values():
                by_severity[proc.severity] = by_severity.get(proc.severity, 0) + 1

        with self._lock:
            history = list(self._history)
        succeeded = sum(1 for r in history if r.success)
        success_rate = round(succeeded / len(history) * 100, 2) if history else 100.0

        return {
            "generated_at": _now_iso(),
            "total_procedures": sum(by_category.values()),
            "categories": list(self._catalog),
            "procedures_by_category": by_category,
            "procedures_by_severity": by_severity,
            "recent_recoveries": [r.to_dict() for r in history[-REPORT_RECENT:]],
            "total_runs": len(history),
            "success_rate": success_rate,
            "system_status": "OPERATIONAL",
            "recommendations": [
                "Regular backup testing",
                "Recovery procedure drills",
                "Documentation updates",
                "Team training sessions",
            ],
        }
