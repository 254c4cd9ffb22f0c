"""
===============================================================================
MÓDULO: Middleware de log de seguridad por request
===============================================================================

CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  SecurityLoggingMiddleware

Responsabilidades:
  - Agregar una línea JSON por request a security.log
    (method, url, ip, user agent, user_id, referer, status, duración).
  - Detectar patrones UA/URL sospechosos -> security-alerts.log + SecurityMetrics.
  - Requests más lentos que slow_request_ms -> slow-requests.log.
  - Respuestas >= 500 y excepciones no manejadas -> errors.log.
  - Alimentar SecurityMetrics.record_request() con el status final.

Colaboradores:
  - application.security (SecurityLogWriter, SecurityMetrics, detector)
  - crosscutting.middleware.get_client_ip
  - identity.auth_users.require_user (setea request.state.user)

Notas:
  - Nunca bloquea un request: la detección solo clasifica.
  - Vive en la capa API porque compone servicios de aplicación.
===============================================================================
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..application.security import (
    SecurityLogWriter,
    SecurityMetrics,
    detect_suspicious_activity,
    get_security_log_writer,
    get_security_metrics,
)
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.middleware import get_client_ip

SECURITY_LOG = "security.log"
ALERTS_LOG = "security-alerts.log"
SLOW_LOG = "slow-requests.log"
ERRORS_LOG = "errors.log"


def _user_id(request: Request) -> str:
    user = getattr(request.state, "user", None)
    return str(user.id) if user is not None else "anonymous"


def _url(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


class SecurityLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        *,
        writer_factory: Callable[[], SecurityLogWriter] = get_security_log_writer,
        metrics_factory: Callable[[], SecurityMetrics] = get_security_metrics,
    ) -> None:
        super().__init__(app)
        self._writer_factory = writer_factory
        self._metrics_factory = metrics_factory

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        writer = self._writer_factory()
        metrics = self._metrics_factory()
        ip = get_client_ip(request)
        user_agent = request.headers.get("user-agent")
        url = _url(request)

        self._detect(request, writer, metrics, ip=ip, user_agent=user_agent, url=url)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            metrics.record_request(500)
            writer.append(
                ERRORS_LOG,
                {
                    **self._base(request, ip, user_agent, url),
                    "type": "ERROR",
                    "message": str(exc),
                    "error_type": type(exc).__name__,
                    "status_code": 500,
                    "duration_ms": duration_ms,
                },
            )
            raise

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        status_code = response.status_code
        metrics.record_request(status_code)

        record = {
            **self._base(request, ip, user_agent, url),
            "referer": request.headers.get("referer") or "direct",
            "status_code": status_code,
            "duration_ms": duration_ms,
        }
        writer.append(SECURITY_LOG, record)

        if duration_ms > get_settings().slow_request_ms:
            logger.warning(
                "Slow request detected",
                extra={"path": request.url.path, "duration_ms": duration_ms},
            )
            writer.append(SLOW_LOG, {**record, "type": "SLOW_REQUEST"})

        if status_code >= 500:
            writer.append(ERRORS_LOG, {**record, "type": "ERROR"})

        return response

    @staticmethod
    def _base(
        request: Request, ip: str, user_agent: str | None, url: str
    ) -> dict[str, Any]:
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": request.method,
            "url": url,
            "ip": ip,
            "user_agent": user_agent,
            "user_id": _user_id(request),
        }

    @staticmethod
    def _detect(
        request: Request,
        writer: SecurityLogWriter,
        metrics: SecurityMetrics,
        *,
        ip: str,
        user_agent: str | None,
        url: str,
    ) -> None:
        match = detect_suspicious_activity(user_agent, url)
        if match is None:
            return
        logger.warning(
            "Suspicious activity detected",
            extra={"activity_type": match.activity_type, "client_ip": ip},
        )
        writer.append(
            ALERTS_LOG,
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "type": "SUSPICIOUS_ACTIVITY",
                "activity_type": match.activity_type,
                "pattern": match.pattern,
                "source": match.source,
                "ip": ip,
                "user_agent": user_agent,
                "url": url,
                "method": request.method,
                "severity": "HIGH",
            },
        )
        metrics.record_suspicious_activity(
            match.activity_type,
            {"ip": ip, "url": url, "user_agent": user_agent, "pattern": match.pattern},
        )
