"""
Name: FastAPI Application Entry Point

Responsibilities:
  - Initialize FastAPI application with metadata (title, version)
  - Configure middleware (body limit, security headers, security log, CORS)
  - Mount the business router under /api
  - Expose infrastructure probes (/healthz, /readyz) and /metrics

Collaborators:
  - FastAPI: ASGI web framework
  - SecurityLoggingMiddleware: per-request security log + suspicious detection
  - RequestContextMiddleware: Request ID and logging context
  - RateLimitMiddleware: fixed-window limits per IP (outermost, ASGI)
  - interfaces.api.http.router: auth, cart, user, admin, health

Notes:
  - Middleware order matters (see comments below)
  - In test env the DB pool is not initialized: repositories are in-memory
  - /metrics can require an admin JWT (METRICS_REQUIRE_AUTH=true)
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from ..application.dev_seed_admin import ensure_dev_admin
from ..application.security import get_security_metrics
from ..container import get_cart_repository, get_user_repository
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.metrics import get_metrics_response
from ..crosscutting.middleware import BodyLimitMiddleware, RequestContextMiddleware
from ..crosscutting.rate_limit import RateLimitMiddleware
from ..crosscutting.security import SecurityHeadersMiddleware
from ..identity.auth_users import hash_password, require_admin
from ..infrastructure.db.pool import close_pool, init_pool
from ..interfaces.api.http.router import router
from ..interfaces.api.http.routers.health import database_counts
from .exception_handlers import register_exception_handlers
from .security_logging import SecurityLoggingMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle. Validates settings and initializes pool."""
    settings = get_settings()

    # R: In-memory repositories in test env; no pool needed
    use_pool = not settings.is_test()
    if use_pool:
        init_pool(
            database_url=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )

    try:
        try:
            ensure_dev_admin(
                settings,
                user_repo=get_user_repository(),
                cart_repo=get_cart_repository(),
                password_hasher=hash_password,
            )
        except Exception as e:
            logger.error(f"Startup failed: {e}")
            raise

        logger.info(
            "MooStyle API starting up",
            extra={
                "app_env": settings.app_env,
                "rate_limit_enabled": settings.rate_limit_enabled,
                "download_window_seconds": settings.download_window_seconds,
                "points_per_item": settings.points_per_item,
                "db_pool_min": settings.db_pool_min_size,
                "db_pool_max": settings.db_pool_max_size,
            },
        )

        yield

    finally:
        if use_pool:
            close_pool()
        logger.info("MooStyle API shutting down")


def _get_allowed_origins() -> list[str]:
    """Get CORS origins from settings, with fallback for import-time errors."""
    try:
        return get_settings().get_allowed_origins_list()
    except Exception:
        return ["http://localhost:5173"]


app = FastAPI(
    title="MooStyle API",
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "auth", "description": "Registration, login and account settings"},
        {"name": "cart", "description": "Mod cart and download rewards"},
        {"name": "user", "description": "Profile, stats and points history"},
        {"name": "admin", "description": "Admin panel (admin/owner only)"},
        {"name": "health", "description": "Health checks"},
    ],
)


# R: Middleware order (bottom = first to execute):
# 1. RateLimitMiddleware (ASGI) - checks rate before anything
# 2. CORSMiddleware - handles preflight
# 3. RequestContextMiddleware - sets request_id
# 4. SecurityLoggingMiddleware - security log, slow requests, suspicious input
# 5. SecurityHeadersMiddleware - hardening headers
# 6. BodyLimitMiddleware - rejects oversized bodies

app.add_middleware(BodyLimitMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(SecurityLoggingMiddleware)
app.add_middleware(RequestContextMiddleware)

try:
    _cors_allow_credentials = get_settings().cors_allow_credentials
except Exception:
    _cors_allow_credentials = False
app.add_middleware(
    CORSMiddleware,
    allow_origins=_get_allowed_origins(),
    allow_credentials=_cors_allow_credentials,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "X-Request-Id",
    ],
)

app.include_router(router)

register_exception_handlers(app)


def _db_status() -> str:
    try:
        database_counts()
        return "connected"
    except Exception as e:
        logger.warning("Health check: DB unavailable", extra={"error": str(e)})
        return "disconnected"


@app.get("/healthz")
def healthz(request: Request):
    """
    R: Liveness + DB check.

    Returns:
        ok: True if the database answers
        db: "connected" or "disconnected"
        request_id: Correlation ID for this request
    """
    db_status = _db_status()
    return {
        "ok": db_status == "connected",
        "db": db_status,
        "request_id": getattr(request.state, "request_id", None),
    }


@app.get("/readyz")
def readyz(request: Request, response: Response):
    """R: Readiness: 503 until the database answers."""
    db_status = _db_status()
    if db_status != "connected":
        response.status_code = 503
    return {
        "ok": db_status == "connected",
        "db": db_status,
        "request_id": getattr(request.state, "request_id", None),
    }


_admin_dependency = require_admin()


async def _metrics_guard(request: Request) -> None:
    if not get_settings().metrics_require_auth:
        return
    await _admin_dependency(request, request.headers.get("authorization"))


@app.get("/metrics")
def metrics(_auth: None = Depends(_metrics_guard)):
    """R: Expose Prometheus metrics (text format)."""
    body, content_type = get_metrics_response()
    return Response(content=body, media_type=content_type)


def _on_rate_limited(client_ip: str, path: str, policy: str) -> None:
    get_security_metrics().record_suspicious_activity(
        "RAPID_REQUESTS", {"ip": client_ip, "path": path, "policy": policy}
    )


# R: Wrap app with rate limit middleware (ASGI-style)
# This MUST be at the very end, after all FastAPI setup
_fastapi_app = app
app = RateLimitMiddleware(_fastapi_app, on_limited=_on_rate_limited)
