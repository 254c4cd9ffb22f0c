# =============================================================================
# FILE: application/dev_seed_admin.py
# =============================================================================
"""
===============================================================================
TASK: Dev Seed Admin (development-only)
===============================================================================

Qué es:
    Asegura que exista un usuario admin/owner para desarrollo cuando
    DEV_SEED_ADMIN=true, con su carrito creado.

Seguridad:
    - Guard estricto: solo corre con app_env == "development".

Patrones:
    - Dependency Injection (repos + hasher)
    - Fail-fast guard (safety boundary)
    - Idempotencia (si el email existe, no toca nada)

CRC:
    Component: ensure_dev_admin
    Responsibilities:
      - Validar guard de ambiente
      - Crear usuario + carrito si falta
    Collaborators:
      - UserRepository, CartRepository
      - password_hasher
      - Settings
===============================================================================
"""

from __future__ import annotations

from typing import Callable
from uuid import uuid4

from ..crosscutting.config import Settings
from ..crosscutting.logger import logger
from ..domain.repositories import CartRepository, UserRepository
from ..identity.users import User, UserRole

_ALLOWED_ENV = "development"


def _resolve_role(role_str: str) -> UserRole:
    try:
        return UserRole((role_str or "").strip().lower())
    except ValueError:
        logger.warning(
            "Dev seed admin: invalid role; falling back to ADMIN",
            extra={"role": role_str},
        )
        return UserRole.ADMIN


def ensure_dev_admin(
    settings: Settings,
    *,
    user_repo: UserRepository,
    cart_repo: CartRepository,
    password_hasher: Callable[[str], str],
) -> User | None:
    """
    Crea el admin de desarrollo si está habilitado y no existe.

    Retorna el usuario creado, o None si no hizo nada.
    """
    if not settings.dev_seed_admin:
        return None

    env = (settings.app_env or "").strip().lower()
    if env != _ALLOWED_ENV:
        raise RuntimeError(
            f"FATAL: DEV_SEED_ADMIN is enabled but APP_ENV is '{env}' "
            f"(must be '{_ALLOWED_ENV}')."
        )

    email = (settings.dev_seed_admin_email or "").strip().lower()
    if not email or not settings.dev_seed_admin_password:
        raise ValueError("Dev seed admin is enabled but email/password are empty")

    if user_repo.get_by_email(email) is not None:
        logger.info("Dev seed admin: user exists; skipping", extra={"email": email})
        return None

    role = _resolve_role(settings.dev_seed_admin_role)
    user = user_repo.create(
        User(
            id=uuid4(),
            email=email,
            username=settings.dev_seed_admin_username,
            name="Administrator",
            password_hash=password_hasher(settings.dev_seed_admin_password),
            role=role,
        )
    )
    cart_repo.get_or_create(user.id)
    logger.info(
        "Dev seed admin: user created",
        extra={"email": email, "role": role.value},
    )
    return user
