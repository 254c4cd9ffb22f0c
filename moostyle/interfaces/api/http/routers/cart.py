"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/cart.py
===============================================================================

Name:
    Cart Router (/api/cart)

Responsibilities:
    - CRUD del carrito del usuario autenticado (get/add/remove/update/clear/sync).
    - Descarga del carrito: puntos + nivel + vaciado atómico.
    - Mapeo de CartError / DownloadError -> RFC7807.
    - Auditoría de la descarga (éxito y fallo).

Collaborators:
    - application.usecases: ManageCartUseCase, DownloadCartUseCase
    - schemas.cart
    - container factories

Notas:
    - Todas las rutas requieren usuario activo: un baneado recibe 403 con
      ban_reason/banned_at desde require_user().
===============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Request

from moostyle.application.usecases import (
    CartResult,
    DownloadCartUseCase,
    ManageCartUseCase,
)
from moostyle.container import get_download_cart_use_case, get_manage_cart_use_case
from moostyle.crosscutting.middleware import get_client_ip
from moostyle.domain import audit
from moostyle.identity.users import User

from ..dependencies import audit_failure, audit_success, current_user, emit
from ..error_mapping import raise_cart_error, raise_download_error
from ..schemas.cart import (
    AddItemReq,
    CartCountRes,
    CartEnvelopeRes,
    CartRes,
    DownloadedItemRes,
    DownloadReq,
    DownloadRes,
    RemoveItemReq,
    SyncCartReq,
    UpdateItemReq,
)
from ..schemas.common import PointTransactionRes

router = APIRouter(prefix="/cart", tags=["cart"])


def _envelope(result: CartResult) -> CartEnvelopeRes:
    if result.error is not None:
        raise_cart_error(result.error)
    return CartEnvelopeRes(message=result.message, cart=CartRes.from_cart(result.cart))


@router.get("", response_model=CartEnvelopeRes)
def get_cart(
    user: User = Depends(current_user),
    use_case: ManageCartUseCase = Depends(get_manage_cart_use_case),
):
    return _envelope(use_case.get_cart(user.id))


@router.get("/count", response_model=CartCountRes)
def cart_count(
    user: User = Depends(current_user),
    use_case: ManageCartUseCase = Depends(get_manage_cart_use_case),
):
    result = use_case.get_cart(user.id)
    return CartCountRes(count=result.cart.total_items)


@router.post("/add", response_model=CartEnvelopeRes)
def add_item(
    req: AddItemReq,
    user: User = Depends(current_user),
    use_case: ManageCartUseCase = Depends(get_manage_cart_use_case),
):
    return _envelope(use_case.add_item(user.id, req.item.to_snapshot(), req.quantity))


@router.delete("/remove", response_model=CartEnvelopeRes)
def remove_item(
    req: RemoveItemReq = Body(...),
    user: User = Depends(current_user),
    use_case: ManageCartUseCase = Depends(get_manage_cart_use_case),
):
    return _envelope(use_case.remove_item(user.id, req.product_id))


@router.put("/update", response_model=CartEnvelopeRes)
def update_item(
    req: UpdateItemReq,
    user: User = Depends(current_user),
    use_case: ManageCartUseCase = Depends(get_manage_cart_use_case),
):
    return _envelope(use_case.update_quantity(user.id, req.product_id, req.quantity))


@router.delete("/clear", response_model=CartEnvelopeRes)
def clear_cart(
    user: User = Depends(current_user),
    use_case: ManageCartUseCase = Depends(get_manage_cart_use_case),
):
    return _envelope(use_case.clear(user.id))


@router.post("/sync", response_model=CartEnvelopeRes)
def sync_cart(
    req: SyncCartReq,
    user: User = Depends(current_user),
    use_case: ManageCartUseCase = Depends(get_manage_cart_use_case),
):
    items = [(entry.item.to_snapshot(), entry.quantity) for entry in req.items]
    return _envelope(use_case.sync(user.id, items))


@router.post("/download", response_model=DownloadRes)
def download_cart(
    request: Request,
    req: DownloadReq | None = None,
    user: User = Depends(current_user),
    use_case: DownloadCartUseCase = Depends(get_download_cart_use_case),
):
    """
    Descarga el carrito.

    - 2 puntos por item (suma de cantidades), nivel recalculado.
    - 429 + Retry-After si hubo otra descarga en los últimos 5 minutos.
    - 400 si el carrito está vacío o el conteo esperado no coincide.
    """
    expected = req.expected_item_count if req is not None else None
    result = use_case.execute(
        user_id=user.id,
        expected_item_count=expected,
        client_ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    if result.error is not None:
        audit_failure(
            request,
            "Cart Download",
            user,
            error=result.error.message,
            error_type=result.error.code.value,
            request_data={"expected_item_count": expected},
        )
        raise_download_error(result.error)

    details = {
        "items_downloaded": result.items_downloaded,
        "points_awarded": result.points_awarded,
        "total_points": result.total_points,
        "membership_level": result.membership_level.value,
        "transaction_id": str(result.transaction.id),
    }
    emit(audit.CART_DOWNLOAD, user, target_id=result.transaction.id, metadata=details)
    audit_success(request, "Cart Download", user, details=details)

    message = f"Download authorized. You earned {result.points_awarded} points!"
    if result.level_changed:
        message += f" You are now {result.membership_level.value}."

    return DownloadRes(
        message=message,
        points_awarded=result.points_awarded,
        total_points=result.total_points,
        previous_level=result.previous_level,
        membership_level=result.membership_level,
        level_changed=result.level_changed,
        items_downloaded=result.items_downloaded,
        items=[
            DownloadedItemRes(
                product_id=i.product_id,
                name=i.name,
                download_url=i.download_url,
                quantity=i.quantity,
            )
            for i in result.items
        ],
        transaction=PointTransactionRes.from_transaction(result.transaction),
    )
