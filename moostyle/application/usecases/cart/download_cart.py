"""
===============================================================================
USE CASE: Download Cart (award points + clear cart, atomically)
===============================================================================

Business Goal:
    Al descargar el carrito, el usuario recibe 2 puntos por item (suma de
    cantidades), su nivel de membresía se recalcula, el carrito se vacía y
    queda exactamente una PointTransaction en el ledger.

Why (Context / Intención):
    - Todo corre dentro de un PointsUnitOfWork: o se aplican los cinco efectos
      (ventana, puntos, last_download_at, carrito vacío, transacción) o ninguno.
    - lock_user() se llama antes de leer last_download_at: dos requests
      concurrentes del mismo usuario no pueden pasar ambos la ventana.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    DownloadCartUseCase

Responsibilities:
    - Verificar ventana de descarga (por defecto 300 s) -> RATE_LIMITED.
    - Validar carrito (existencia, vacío, conteo esperado por el cliente).
    - Calcular puntos y nivel nuevo; escribir usuario, carrito y transacción.
    - Registrar métricas de outcome y puntos otorgados.

Collaborators:
    - domain.repositories.PointsUnitOfWork / PointsSession
    - domain.membership.membership_for_points
    - crosscutting.metrics (record_download, record_points_awarded)
===============================================================================
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import UUID

from ....crosscutting.logger import logger
from ....crosscutting.metrics import record_download, record_points_awarded
from ....domain.entities import (
    Cart,
    PointTransaction,
    TransactionSource,
    TransactionType,
)
from ....domain.membership import membership_for_points
from ....domain.repositories import PointsUnitOfWork
from .cart_results import (
    DownloadedItem,
    DownloadError,
    DownloadErrorCode,
    DownloadResult,
)

DEFAULT_WINDOW_SECONDS = 300
DEFAULT_POINTS_PER_ITEM = 2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class DownloadCartUseCase:
    def __init__(
        self,
        unit_of_work: PointsUnitOfWork,
        *,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        points_per_item: int = DEFAULT_POINTS_PER_ITEM,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow = unit_of_work
        self._window_seconds = window_seconds
        self._points_per_item = points_per_item
        self._clock = clock

    def execute(
        self,
        *,
        user_id: UUID,
        expected_item_count: int | None = None,
        client_ip: str | None = None,
        user_agent: str | None = None,
    ) -> DownloadResult:
        with self._uow.begin() as session:
            user = session.lock_user(user_id)
            if user is None:
                return self._fail(DownloadErrorCode.NOT_FOUND, "User not found")

            now = self._clock()

            # 1) Ventana de descarga
            retry_after = self._seconds_left(user.last_download_at, now)
            if retry_after > 0:
                return self._fail(
                    DownloadErrorCode.RATE_LIMITED,
                    "Please wait 5 minutes between downloads",
                    retry_after=retry_after,
                )

            # 2) Carrito
            cart = session.get_cart(user_id)
            if cart is None:
                return self._fail(DownloadErrorCode.NOT_FOUND, "Cart not found")
            if cart.is_empty:
                return self._fail(DownloadErrorCode.EMPTY_CART, "Cart is empty")

            item_count = cart.total_items
            if item_count <= 0:
                return self._fail(
                    DownloadErrorCode.INVALID_COUNT, "Invalid item count"
                )
            if expected_item_count is not None and expected_item_count != item_count:
                return self._fail(
                    DownloadErrorCode.INVALID_COUNT,
                    "Cart changed since it was displayed; please review it again",
                )

            # 3) Puntos + nivel
            points_awarded = item_count * self._points_per_item
            previous_level = user.membership_level
            total_points = user.points + points_awarded
            new_level = membership_for_points(total_points)

            items = self._snapshot_items(cart)
            transaction = PointTransaction(
                user_id=user.id,
                points=points_awarded,
                type=TransactionType.EARN,
                source=TransactionSource.DOWNLOAD,
                description=f"Downloaded {item_count} mod(s) from cart",
                balance_before=user.points,
                balance_after=total_points,
                level_before=previous_level,
                level_after=new_level,
                metadata=self._metadata(cart, item_count, client_ip, user_agent),
                created_at=now,
            )

            # 4) Escrituras (visibles solo si el bloque termina sin excepción)
            cart.clear()
            session.save_cart(cart)
            session.update_user(
                replace(
                    user,
                    points=total_points,
                    membership_level=new_level,
                    last_download_at=now,
                )
            )
            session.record_transaction(transaction)

        record_download("success")
        record_points_awarded(points_awarded, TransactionSource.DOWNLOAD.value)
        logger.info(
            "Cart downloaded",
            extra={
                "user_id": str(user_id),
                "items": item_count,
                "points_awarded": points_awarded,
                "membership_level": new_level.value,
            },
        )

        return DownloadResult(
            points_awarded=points_awarded,
            total_points=total_points,
            previous_level=previous_level,
            membership_level=new_level,
            level_changed=previous_level != new_level,
            items_downloaded=item_count,
            transaction=transaction,
            items=items,
        )

    # =========================================================================
    # Helpers privados
    # =========================================================================

    def _seconds_left(self, last_download_at: datetime | None, now: datetime) -> int:
        if last_download_at is None or self._window_seconds <= 0:
            return 0
        elapsed = (now - _as_aware(last_download_at)).total_seconds()
        remaining = self._window_seconds - elapsed
        return math.ceil(remaining) if remaining > 0 else 0

    @staticmethod
    def _snapshot_items(cart: Cart) -> list[DownloadedItem]:
        return [
            DownloadedItem(
                product_id=item.product_id,
                name=item.product.name,
                download_url=item.product.download_url,
                quantity=item.quantity,
            )
            for item in cart.items
        ]

    @staticmethod
    def _metadata(
        cart: Cart, item_count: int, client_ip: str | None, user_agent: str | None
    ) -> dict[str, Any]:
        return {
            "item_count": item_count,
            "product_ids": [item.product_id for item in cart.items],
            "cart_id": str(cart.id),
            "ip": client_ip,
            "user_agent": user_agent,
        }

    @staticmethod
    def _fail(
        code: DownloadErrorCode, message: str, *, retry_after: int | None = None
    ) -> DownloadResult:
        record_download(code.value.lower())
        return DownloadResult(
            error=DownloadError(code=code, message=message, retry_after=retry_after)
        )
