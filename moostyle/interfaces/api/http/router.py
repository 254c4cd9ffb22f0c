"""
===============================================================================
TARJETA CRC — router.py (Router raíz / Composición)
===============================================================================

Responsabilidades:
  - Definir el APIRouter raíz que se incluye en FastAPI bajo /api.
  - Centralizar responses RFC7807 para OpenAPI.
  - Componer routers por feature (auth/cart/user/admin/health).

Patrones aplicados:
  - Composition over inheritance: router raíz compone sub-routers.
  - Factory: build_router() para testear composición y evitar side-effects al importar.

Colaboradores:
  - crosscutting.error_responses.OPENAPI_ERROR_RESPONSES
  - routers.* (sub-routers por feature)
===============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter

from moostyle.crosscutting.error_responses import OPENAPI_ERROR_RESPONSES

from .routers import (
    admin_router,
    auth_router,
    cart_router,
    health_router,
    users_router,
)

API_PREFIX = "/api"


def build_router() -> APIRouter:
    """Construye el router raíz /api."""
    api_router = APIRouter(prefix=API_PREFIX, responses=OPENAPI_ERROR_RESPONSES)

    api_router.include_router(auth_router)
    api_router.include_router(cart_router)
    api_router.include_router(users_router)
    api_router.include_router(health_router)
    # Admin al final: comparte helpers con health.
    api_router.include_router(admin_router)

    return api_router


router = build_router()

__all__ = ["API_PREFIX", "router", "build_router"]
