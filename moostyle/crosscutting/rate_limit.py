"""
===============================================================================
MÓDULO: Rate limiting (ventana fija por IP) - in-memory
===============================================================================

Objetivo
--------
Limitar abuso por IP de cliente con tres políticas elegidas por path:
- download: POST /api/cart/download      (3 cada 5 min por defecto)
- auth:     /api/auth/login, /register   (5 cada 15 min)
- api:      todo lo demás bajo /api      (100 cada 15 min)

Incluye:
- Ventanas fijas (un contador por clave que se reinicia al vencer la ventana)
- Headers x-ratelimit-remaining / x-ratelimit-limit
- Respuesta RFC7807 con Retry-After

Mejoras incluidas
-----------------
- Las ventanas vencidas se purgan periódicamente (la memoria no crece sin límite)
- Cantidad acotada de claves con desalojo tipo LRU

Solo un proceso: los contadores no se comparten entre workers.

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componentes:
  - FixedWindowLimiter
  - RateLimitPolicy / resolve_policy()
  - RateLimitMiddleware

Responsabilidades:
  - Decidir permitir/denegar
  - Emitir 429 con Retry-After
  - Mantener estado thread-safe

Colaboradores:
  - crosscutting.config
  - crosscutting.error_responses
  - crosscutting.logger
  - application.security.suspicious (RAPID_REQUESTS al rechazar)
===============================================================================
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

from .error_responses import app_exception_handler, rate_limited
from .logger import logger
from .metrics import record_rate_limited
from .middleware import get_client_ip


@dataclass
class Window:
    started_at: float
    count: int


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    limit: int
    window_seconds: int
    message: str


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: float


class FixedWindowLimiter:
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      FixedWindowLimiter

    Responsabilidades:
      - Contar hits por clave dentro de una ventana fija
      - Reiniciar el contador al vencer la ventana
      - Purgar ventanas vencidas
      - Desalojar las claves más viejas por encima de max_keys

    Colaboradores:
      - RateLimitMiddleware
    ----------------------------------------------------------------------------
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        *,
        max_keys: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit <= 0:
            raise ValueError("limit must be > 0")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self.limit = int(limit)
        self.window_seconds = float(window_seconds)
        self.max_keys = int(max_keys)

        self._clock = clock
        self._windows: "OrderedDict[str, Window]" = OrderedDict()
        self._lock = threading.Lock()
        self._ops = 0

    def hit(self, key: str) -> RateLimitDecision:
        with self._lock:
            now = self._clock()
            self._ops += 1
            self._purge_if_needed(now)

            window = self._current_window(key, now)
            self._windows.move_to_end(key, last=True)

            if window.count >= self.limit:
                retry_after = window.started_at + self.window_seconds - now
                return RateLimitDecision(False, 0, max(retry_after, 0.0))

            window.count += 1
            return RateLimitDecision(True, self.limit - window.count, 0.0)

    def get_remaining(self, key: str) -> int:
        with self._lock:
            window = self._windows.get(key)
            if not window or self._expired(window, self._clock()):
                return self.limit
            return max(self.limit - window.count, 0)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    # --------------------------- internos ---------------------------

    def _expired(self, window: Window, now: float) -> bool:
        return now - window.started_at >= self.window_seconds

    def _current_window(self, key: str, now: float) -> Window:
        window = self._windows.get(key)
        if window and not self._expired(window, now):
            return window

        if window is None and len(self._windows) >= self.max_keys:
            self._windows.popitem(last=False)

        window = Window(started_at=now, count=0)
        self._windows[key] = window
        return window

    def _purge_if_needed(self, now: float) -> None:
        # Amortizado: cada ~256 operaciones.
        if (self._ops & 0xFF) != 0:
            return
        expired = [k for k, w in self._windows.items() if self._expired(w, now)]
        for k in expired:
            self._windows.pop(k, None)


# -----------------------------------------------------------------------------
# Políticas (singletons por proceso)
# -----------------------------------------------------------------------------

DOWNLOAD_POLICY = "download"
AUTH_POLICY = "auth"
API_POLICY = "api"

_AUTH_PATHS = {"/api/auth/login", "/api/auth/register"}
_DOWNLOAD_PATH = "/api/cart/download"

_limiters: dict[str, FixedWindowLimiter] = {}
_policies: dict[str, RateLimitPolicy] = {}
_limiter_lock = threading.Lock()


def get_policies() -> dict[str, RateLimitPolicy]:
    with _limiter_lock:
        if not _policies:
            from .config import get_settings

            s = get_settings()
            _policies.update(
                {
                    DOWNLOAD_POLICY: RateLimitPolicy(
                        DOWNLOAD_POLICY,
                        s.download_rate_limit,
                        s.download_rate_window_seconds,
                        "Too many download requests, please try again later.",
                    ),
                    AUTH_POLICY: RateLimitPolicy(
                        AUTH_POLICY,
                        s.auth_rate_limit,
                        s.auth_rate_window_seconds,
                        "Too many authentication attempts, please try again later.",
                    ),
                    API_POLICY: RateLimitPolicy(
                        API_POLICY,
                        s.api_rate_limit,
                        s.api_rate_window_seconds,
                        "Too many requests from this IP, please try again later.",
                    ),
                }
            )
        return dict(_policies)


def get_rate_limiter(policy_name: str) -> FixedWindowLimiter:
    policy = get_policies()[policy_name]
    with _limiter_lock:
        limiter = _limiters.get(policy_name)
        if limiter is None:
            limiter = FixedWindowLimiter(policy.limit, policy.window_seconds)
            _limiters[policy_name] = limiter
        return limiter


def reset_rate_limiter() -> None:
    with _limiter_lock:
        _limiters.clear()
        _policies.clear()


def is_rate_limiting_enabled() -> bool:
    from .config import get_settings

    return get_settings().rate_limit_enabled


def resolve_policy(method: str, path: str) -> Optional[str]:
    """Elige la política del request (None = sin límite)."""
    if not path.startswith("/api/"):
        return None
    if path.startswith("/api/health"):
        return None
    if method.upper() == "POST" and path.rstrip("/") == _DOWNLOAD_PATH:
        return DOWNLOAD_POLICY
    if path.rstrip("/") in _AUTH_PATHS:
        return AUTH_POLICY
    return API_POLICY


class RateLimitMiddleware:
    """
    Middleware ASGI de rate limit.

    - Solo se limitan rutas /api; health y endpoints de infra quedan exentos.
    - Sin overhead cuando está deshabilitado.
    """

    def __init__(self, app, on_limited: Callable[[str, str, str], None] | None = None):
        self.app = app
        self._on_limited = on_limited

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not is_rate_limiting_enabled():
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "").upper()
        path = scope.get("path", "")
        policy_name = None if method == "OPTIONS" else resolve_policy(method, path)
        if policy_name is None:
            await self.app(scope, receive, send)
            return

        from starlette.requests import Request

        request = Request(scope, receive)
        client_ip = get_client_ip(request)

        policy = get_policies()[policy_name]
        limiter = get_rate_limiter(policy_name)
        decision = limiter.hit(f"{policy_name}:{client_ip}")

        if not decision.allowed:
            retry_after_int = max(1, int(decision.retry_after) + 1)

            logger.warning(
                "rate limit exceeded",
                extra={
                    "client_ip": client_ip,
                    "policy": policy_name,
                    "retry_after": retry_after_int,
                },
            )
            record_rate_limited(policy_name)
            if self._on_limited is not None:
                self._on_limited(client_ip, path, policy_name)

            exc = rate_limited(retry_after_int, detail=policy.message)
            exc.headers = {
                **(exc.headers or {}),
                "x-ratelimit-remaining": "0",
                "x-ratelimit-limit": str(limiter.limit),
            }

            response = await app_exception_handler(request, exc)
            await response(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                hdrs = list(message.get("headers", []))
                hdrs.append((b"x-ratelimit-remaining", str(decision.remaining).encode()))
                hdrs.append((b"x-ratelimit-limit", str(limiter.limit).encode()))
                message["headers"] = hdrs
            await send(message)

        await self.app(scope, receive, send_with_headers)
