"""
===============================================================================
TARJETA CRC — application/security/security_metrics.py
===============================================================================

Clase:
    SecurityMetrics

Responsabilidades:
    - Mantener contadores en memoria del proceso: requests, fallos, actividad
      sospechosa, IPs bloqueadas, logins, acciones admin, eventos de seguridad.
    - Agregar estadísticas por hora (hourly_stats[YYYY-MM-DD][hora]).
    - Persistir los eventos relevantes como JSON-lines bajo metrics/.
    - Calcular success rate, threat level y recomendaciones para el admin.

Colaboradores:
    - SecurityLogWriter (metrics/*.log)
    - crosscutting.metrics.record_suspicious_activity (Prometheus)

Notas:
    - Single-process: los contadores se reinician con el proceso.
    - Thread-safe (Lock): los middlewares corren en paralelo.
===============================================================================
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable

from ...crosscutting.metrics import record_suspicious_activity as prom_suspicious
from .log_files import SecurityLogWriter, get_security_log_writer

HIGH_SEVERITY = frozenset({"SQL_INJECTION", "XSS_ATTEMPT", "CSRF_ATTACK", "BRUTE_FORCE"})
MEDIUM_SEVERITY = frozenset({"SUSPICIOUS_USER_AGENT", "RAPID_REQUESTS", "UNUSUAL_PATTERN"})

_METRICS_DIR = "metrics"


def severity_for(activity_type: str) -> str:
    if activity_type in HIGH_SEVERITY:
        return "HIGH"
    if activity_type in MEDIUM_SEVERITY:
        return "MEDIUM"
    return "LOW"


def error_type_for(status_code: int) -> str:
    if status_code >= 500:
        return "SERVER_ERROR"
    if status_code >= 400:
        return "CLIENT_ERROR"
    if status_code >= 300:
        return "REDIRECT"
    return "SUCCESS"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _empty_hour() -> dict[str, int]:
    return {"requests": 0, "errors": 0, "suspicious": 0, "logins": 0, "admin_actions": 0}


class SecurityMetrics:
    def __init__(
        self,
        writer: SecurityLogWriter,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._writer = writer
        self._clock = clock
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        self.total_requests = 0
        self.failed_requests = 0
        self.suspicious_activities = 0
        self.blocked_ips: set[str] = set()
        self.user_logins = 0
        self.admin_actions = 0
        self.security_events = 0
        self.error_counts: dict[str, int] = {}
        self.hourly_stats: dict[str, dict[int, dict[str, int]]] = {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _bucket(self, now: datetime) -> dict[str, int]:
        day = self.hourly_stats.setdefault(now.strftime("%Y-%m-%d"), {})
        return day.setdefault(now.hour, _empty_hour())

    def _write(self, filename: str, record: dict[str, Any]) -> None:
        self._writer.append(f"{_METRICS_DIR}/{filename}", record)

    # ------------------------------------------------------------------
    # Registro
    # ------------------------------------------------------------------
    def record_request(self, status_code: int) -> None:
        now = self._clock()
        with self._lock:
            self.total_requests += 1
            bucket = self._bucket(now)
            bucket["requests"] += 1
            if status_code >= 400:
                self.failed_requests += 1
                bucket["errors"] += 1
                error_type = error_type_for(status_code)
                self.error_counts[error_type] = self.error_counts.get(error_type, 0) + 1

    def record_suspicious_activity(
        self, activity_type: str, details: dict[str, Any] | None = None
    ) -> str:
        now = self._clock()
        severity = severity_for(activity_type)
        with self._lock:
            self.suspicious_activities += 1
            self.security_events += 1
            self._bucket(now)["suspicious"] += 1
        prom_suspicious(activity_type)
        self._write(
            "suspicious-activities.log",
            {
                "timestamp": now.isoformat(),
                "type": activity_type,
                "details": details or {},
                "severity": severity,
            },
        )
        return severity

    def record_user_login(self, user_id: str | None, ip: str | None, success: bool) -> None:
        now = self._clock()
        with self._lock:
            self.user_logins += 1
            self._bucket(now)["logins"] += 1
        self._write(
            "user-logins.log",
            {
                "timestamp": now.isoformat(),
                "user_id": user_id,
                "success": success,
                "ip": ip,
                "type": "USER_LOGIN",
            },
        )

    def record_admin_action(
        self, admin_id: str, action: str, target: dict[str, Any] | None = None
    ) -> None:
        now = self._clock()
        with self._lock:
            self.admin_actions += 1
            self._bucket(now)["admin_actions"] += 1
        self._write(
            "admin-actions.log",
            {
                "timestamp": now.isoformat(),
                "action": action,
                "user_id": admin_id,
                "details": target or {},
                "type": "ADMIN_ACTION",
            },
        )

    def block_ip(self, ip: str, reason: str) -> None:
        now = self._clock()
        with self._lock:
            self.blocked_ips.add(ip)
        self._write(
            "blocked-ips.log",
            {"timestamp": now.isoformat(), "ip": ip, "reason": reason, "type": "IP_BLOCKED"},
        )

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 100.0
        ok = self.total_requests - self.failed_requests
        return round(ok / self.total_requests * 100, 2)

    def threat_level(self) -> str:
        rate = self.suspicious_activities / max(self.total_requests, 1) * 100
        if rate > 5:
            return "HIGH"
        if rate > 2:
            return "MEDIUM"
        if rate > 0.5:
            return "LOW"
        return "MINIMAL"

    def get_security_metrics(self) -> dict[str, Any]:
        now = self._clock()
        today = now.strftime("%Y-%m-%d")
        yesterday = (now - timedelta(days=1)).strftime("%Y-%m-%d")
        with self._lock:
            return {
                "overview": {
                    "total_requests": self.total_requests,
                    "failed_requests": self.failed_requests,
                    "suspicious_activities": self.suspicious_activities,
                    "blocked_ips": len(self.blocked_ips),
                    "user_logins": self.user_logins,
                    "admin_actions": self.admin_actions,
                    "security_events": self.security_events,
                },
                "error_breakdown": dict(self.error_counts),
                "today_stats": {
                    str(h): dict(v) for h, v in self.hourly_stats.get(today, {}).items()
                },
                "yesterday_stats": {
                    str(h): dict(v)
                    for h, v in self.hourly_stats.get(yesterday, {}).items()
                },
                "success_rate": self.success_rate(),
                "threat_level": self.threat_level(),
            }

    def recommendations(self) -> list[str]:
        recs: list[str] = []
        if self.suspicious_activities > 10:
            recs.append(
                "High suspicious activity detected. Review the sources and consider "
                "additional rate limiting."
            )
        if self.total_requests and self.failed_requests / self.total_requests > 0.1:
            recs.append("High error rate detected. Investigate error logs and system health.")
        if len(self.blocked_ips) > 5:
            recs.append(
                "Multiple IP blocks detected. Review the block list and trusted sources."
            )
        return recs

    def generate_security_report(self, period: str = "daily") -> dict[str, Any]:
        metrics = self.get_security_metrics()
        overview = metrics["overview"]
        return {
            "period": period,
            "generated_at": self._clock().isoformat(),
            "metrics": metrics,
            "summary": {
                "total_requests": overview["total_requests"],
                "failed_requests": overview["failed_requests"],
                "suspicious_activities": overview["suspicious_activities"],
                "success_rate": metrics["success_rate"],
                "threat_level": metrics["threat_level"],
            },
            "recommendations": self.recommendations(),
        }


@lru_cache(maxsize=1)
def get_security_metrics() -> SecurityMetrics:
    return SecurityMetrics(get_security_log_writer())
