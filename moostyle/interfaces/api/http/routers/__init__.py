"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/__init__.py
===============================================================================

Name:
    Routers Package (HTTP)

Responsibilities:
    - Exponer routers segmentados por feature para el router raíz.

Notas:
    - Este archivo NO define endpoints. Solo re-exporta routers.
===============================================================================
"""

from .admin import router as admin_router
from .auth import router as auth_router
from .cart import router as cart_router
from .health import router as health_router
from .users import router as users_router

__all__ = [
    "admin_router",
    "auth_router",
    "cart_router",
    "health_router",
    "users_router",
]
