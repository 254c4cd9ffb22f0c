"""
===============================================================================
TARJETA CRC — schemas/cart.py
===============================================================================

Módulo:
    Schemas HTTP para el carrito (/api/cart)

Responsabilidades:
    - Snapshot de producto enviado por el frontend (ProductReq).
    - Requests de add/remove/update/sync/download.
    - Respuestas de carrito (con totales derivados) y de descarga.
===============================================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from moostyle.domain.entities import Cart, CartItem, ProductSnapshot
from moostyle.domain.membership import MembershipLevel

from .common import EnvelopeRes, PointTransactionRes


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------
class ProductReq(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    author: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=5000)
    image: str | None = Field(default=None, max_length=2048)
    category: str | None = Field(default=None, max_length=100)
    tags: List[str] = Field(default_factory=list, max_length=50)
    download_url: str | None = Field(default=None, max_length=2048)
    file_size: int = Field(default=0, ge=0)
    price: float = Field(default=0.0, ge=0)

    @field_validator("product_id", "name")
    @classmethod
    def strip_required(cls, v: str) -> str:
        return v.strip()

    def to_snapshot(self) -> ProductSnapshot:
        return ProductSnapshot(
            product_id=self.product_id,
            name=self.name,
            author=self.author,
            description=self.description,
            image=self.image,
            category=self.category,
            tags=tuple(self.tags),
            download_url=self.download_url,
            file_size=self.file_size,
            price=self.price,
        )


class AddItemReq(BaseModel):
    item: ProductReq
    quantity: int = Field(default=1)


class RemoveItemReq(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=100)


class UpdateItemReq(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=100)
    quantity: int


class SyncItemReq(BaseModel):
    item: ProductReq
    quantity: int = Field(default=1)


class SyncCartReq(BaseModel):
    items: List[SyncItemReq] = Field(default_factory=list, max_length=500)


class DownloadReq(BaseModel):
    expected_item_count: int | None = Field(
        default=None,
        description="Cantidad que el cliente mostró; si difiere, la descarga se rechaza",
    )


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------
class CartItemRes(BaseModel):
    product_id: str
    name: str
    author: str | None = None
    description: str | None = None
    image: str | None = None
    category: str | None = None
    tags: List[str] = Field(default_factory=list)
    download_url: str | None = None
    file_size: int = 0
    price: float = 0.0
    quantity: int
    added_at: datetime

    @classmethod
    def from_item(cls, item: CartItem) -> "CartItemRes":
        return cls(**item.product.to_dict(), quantity=item.quantity, added_at=item.added_at)


class CartRes(BaseModel):
    id: UUID
    user_id: UUID
    items: List[CartItemRes]
    total_items: int
    total_size: int
    total_price: float
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_cart(cls, cart: Cart) -> "CartRes":
        return cls(
            id=cart.id,
            user_id=cart.user_id,
            items=[CartItemRes.from_item(i) for i in cart.items],
            total_items=cart.total_items,
            total_size=cart.total_size,
            total_price=round(cart.total_price, 2),
            is_active=cart.is_active,
            created_at=cart.created_at,
            updated_at=cart.updated_at,
        )


class CartEnvelopeRes(EnvelopeRes):
    cart: CartRes


class CartCountRes(EnvelopeRes):
    count: int


class DownloadedItemRes(BaseModel):
    product_id: str
    name: str
    download_url: str | None = None
    quantity: int


class DownloadRes(EnvelopeRes):
    points_awarded: int
    total_points: int
    previous_level: MembershipLevel
    membership_level: MembershipLevel
    level_changed: bool
    items_downloaded: int
    items: List[DownloadedItemRes]
    transaction: PointTransactionRes
