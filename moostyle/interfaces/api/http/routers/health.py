"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/health.py
===============================================================================

Name:
    Health Router (/api/health)

Responsibilities:
    - Reportar estado general del proceso (uptime, entorno).
    - Chequear conectividad de la base con conteos (503 si no responde).
    - Exponer chequeos por subsistema (auth, cart, users).

Collaborators:
    - container: repositorios (Postgres o in-memory según entorno)
    - crosscutting.error_responses.service_unavailable
===============================================================================
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable

from fastapi import APIRouter

from moostyle.container import (
    get_cart_repository,
    get_point_transaction_repository,
    get_user_repository,
)
from moostyle.crosscutting.config import get_settings
from moostyle.crosscutting.error_responses import service_unavailable
from moostyle.crosscutting.logger import logger

from ..schemas.health import HealthRes, SubsystemHealthRes

router = APIRouter(prefix="/health", tags=["health"])

_STARTED_AT = time.monotonic()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def uptime_seconds() -> float:
    return round(time.monotonic() - _STARTED_AT, 3)


def database_counts() -> dict[str, int]:
    """Conteos básicos; propaga la excepción si la base no responde."""
    return {
        "users": get_user_repository().count_users(),
        "carts": get_cart_repository().count_carts(),
        "transactions": get_point_transaction_repository().count_transactions(),
    }


def _check(subsystem: str, probe: Callable[[], dict[str, int]]) -> SubsystemHealthRes:
    try:
        counts = probe()
    except Exception as exc:
        logger.warning(
            "Health check failed", extra={"subsystem": subsystem, "error": str(exc)}
        )
        raise service_unavailable(subsystem) from exc
    return SubsystemHealthRes(
        status="healthy", subsystem=subsystem, timestamp=_now(), counts=counts
    )


@router.get("", response_model=HealthRes)
def health():
    return HealthRes(
        status="healthy",
        timestamp=_now(),
        uptime_seconds=uptime_seconds(),
        environment=get_settings().app_env,
    )


@router.get("/database", response_model=SubsystemHealthRes)
def health_database():
    return _check("database", database_counts)


@router.get("/auth", response_model=SubsystemHealthRes)
def health_auth():
    return _check("auth", lambda: {"users": get_user_repository().count_users()})


@router.get("/cart", response_model=SubsystemHealthRes)
def health_cart():
    return _check("cart", lambda: {"carts": get_cart_repository().count_carts()})


@router.get("/users", response_model=SubsystemHealthRes)
def health_users():
    def probe() -> dict[str, int]:
        users = get_user_repository()
        return {"users": users.count_users(), **users.status_counts()}

    return _check("users", probe)
