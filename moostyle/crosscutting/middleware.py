"""
===============================================================================
MÓDULO: middlewares HTTP de plataforma (contexto de request + límite de body)
===============================================================================

Componentes:
  - get_client_ip(): regla única para la IP del cliente (rate limit, security
    log, metadata de descargas).
  - RequestContextMiddleware: X-Request-Id, ContextVars, log de acceso y
    métricas HTTP.
  - BodyLimitMiddleware (ASGI): 413 si el body supera max_body_bytes, tanto
    con Content-Length como con body chunked.

Colaboradores:
  - moostyle/context.py
  - crosscutting.metrics.record_request_metrics
  - crosscutting.error_responses.build_problem (413 en problem+json)
===============================================================================
"""

from __future__ import annotations

import json
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..context import clear_context, set_request_context
from .error_responses import PROBLEM_JSON_MEDIA_TYPE, ErrorCode, build_problem
from .logger import logger
from .metrics import record_request_metrics

REQUEST_ID_HEADER = "X-Request-Id"
MAX_REQUEST_ID_LENGTH = 128

# Probes y scraping: sin log de acceso (sí cuentan en métricas).
_QUIET_PREFIXES = ("/healthz", "/readyz", "/metrics", "/api/health")


def get_client_ip(request: Request) -> str:
    """Primer hop de X-Forwarded-For; si no viene, la IP del socket."""
    first_hop = (request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
    if first_hop:
        return first_hop
    return request.client.host if request.client else "unknown"


def _request_id_from(request: Request) -> str:
    incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH:
        return incoming
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _request_id_from(request)
        client_ip = get_client_ip(request)
        path = request.url.path

        set_request_context(
            request_id=request_id,
            method=request.method,
            path=path,
            client_ip=client_ip,
        )
        request.state.request_id = request_id
        request.state.client_ip = client_ip

        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except Exception:
            logger.exception("request failed", extra={"status_code": 500})
            raise
        finally:
            latency = time.perf_counter() - start
            record_request_metrics(
                endpoint=path,
                method=request.method,
                status_code=status_code,
                latency_seconds=latency,
            )
            if not path.startswith(_QUIET_PREFIXES):
                user = getattr(request.state, "user", None)
                logger.info(
                    "request completed",
                    extra={
                        "status_code": status_code,
                        "latency_ms": round(latency * 1000, 2),
                        "user_id": str(user.id) if user is not None else None,
                    },
                )
            clear_context()


class _BodyTooLarge(Exception):
    pass


class BodyLimitMiddleware:
    """ASGI: corta antes de que FastAPI parsee el JSON (p.ej. un /api/cart/sync enorme)."""

    def __init__(self, app, max_bytes: int | None = None):
        if max_bytes is None:
            from .config import get_settings

            max_bytes = get_settings().max_body_bytes
        self.app = app
        self._max_bytes = max_bytes

    def _declared_length(self, scope) -> int | None:
        for name, value in scope.get("headers", []):
            if name.lower() == b"content-length":
                raw = value.decode("latin-1").strip()
                return int(raw) if raw.isdigit() else None
        return None

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        declared = self._declared_length(scope)
        if declared is not None and declared > self._max_bytes:
            logger.warning(
                "payload too large",
                extra={"content_length": declared, "max_bytes": self._max_bytes},
            )
            await self._reject(send, path)
            return

        received = 0
        response_started = False

        async def counting_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body") or b"")
                if received > self._max_bytes:
                    raise _BodyTooLarge()
            return message

        async def tracking_send(message):
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, counting_receive, tracking_send)
        except _BodyTooLarge:
            if response_started:
                # R: ya salió el status line; no hay 413 posible.
                logger.error("payload exceeded limit after response started")
                raise
            logger.warning(
                "payload too large (chunked)",
                extra={"received_bytes": received, "max_bytes": self._max_bytes},
            )
            await self._reject(send, path)

    async def _reject(self, send, path: str) -> None:
        problem = build_problem(
            status=413,
            code=ErrorCode.PAYLOAD_TOO_LARGE,
            detail=f"Request body too large. Maximum allowed: {self._max_bytes} bytes",
            instance=path,
        )
        await send(
            {
                "type": "http.response.start",
                "status": 413,
                "headers": [(b"content-type", PROBLEM_JSON_MEDIA_TYPE.encode())],
            }
        )
        await send(
            {
                "type": "http.response.body",
                "body": json.dumps(problem, ensure_ascii=False).encode("utf-8"),
            }
        )
