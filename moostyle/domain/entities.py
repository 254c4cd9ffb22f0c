"""
CRC — domain/entities.py

Name
- Entidades de la tienda (Cart, CartItem, ProductSnapshot, PointTransaction)

Responsibilities
- Modelar el carrito del usuario y sus reglas (merge, quitar, actualizar, vaciar).
- Totales del carrito (items, tamaño, precio) siempre derivados, nunca guardados.
- Modelar el registro append-only de puntos y sus enums de clasificación.

Collaborators
- domain.membership.MembershipLevel (nivel antes/después en cada transacción)
- domain.repositories (contratos de persistencia)
- application.usecases.cart (orquestación)

Constraints
- Sin imports de infraestructura; Python puro.
- CartItem.quantity >= 1 siempre: una cantidad <= 0 quita el item.
- total_items es siempre la suma de cantidades (propiedad calculada).
- PointTransaction es inmutable: una vez registrada no cambia.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, List
from uuid import UUID, uuid4

from .membership import MembershipLevel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Cart
# =============================================================================


@dataclass(frozen=True, slots=True)
class ProductSnapshot:
    """
    Copia de los datos del catálogo al momento de agregar el mod.

    El catálogo vive en el bundle del frontend; el carrito guarda lo necesario
    para renderizar y devolver los links de descarga.
    """

    product_id: str
    name: str
    author: str | None = None
    description: str | None = None
    image: str | None = None
    category: str | None = None
    tags: tuple[str, ...] = ()
    download_url: str | None = None
    file_size: int = 0
    price: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "author": self.author,
            "description": self.description,
            "image": self.image,
            "category": self.category,
            "tags": list(self.tags),
            "download_url": self.download_url,
            "file_size": self.file_size,
            "price": self.price,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductSnapshot":
        return cls(
            product_id=str(data["product_id"]),
            name=str(data.get("name") or ""),
            author=data.get("author"),
            description=data.get("description"),
            image=data.get("image"),
            category=data.get("category"),
            tags=tuple(data.get("tags") or ()),
            download_url=data.get("download_url"),
            file_size=int(data.get("file_size") or 0),
            price=float(data.get("price") or 0.0),
        )


@dataclass(slots=True)
class CartItem:
    product: ProductSnapshot
    quantity: int = 1
    added_at: datetime = field(default_factory=_utcnow)

    @property
    def product_id(self) -> str:
        return self.product.product_id


@dataclass
class Cart:
    """
    Un carrito por usuario.

    Los items conservan el orden de inserción; agregar un producto que ya está
    suma la cantidad a la línea existente.
    """

    user_id: UUID
    id: UUID = field(default_factory=uuid4)
    items: List[CartItem] = field(default_factory=list)
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------
    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_size(self) -> int:
        return sum(item.product.file_size * item.quantity for item in self.items)

    @property
    def total_price(self) -> float:
        return round(sum(item.product.price * item.quantity for item in self.items), 2)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def get_item(self, product_id: str) -> CartItem | None:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def contains(self, product_id: str) -> bool:
        return self.get_item(product_id) is not None

    # ------------------------------------------------------------------
    # Mutaciones
    # ------------------------------------------------------------------
    def add_item(self, product: ProductSnapshot, quantity: int = 1) -> CartItem:
        if quantity < 1:
            raise ValueError("quantity must be >= 1")

        existing = self.get_item(product.product_id)
        if existing is not None:
            existing.quantity += quantity
            self._touch()
            return existing

        item = CartItem(product=product, quantity=quantity)
        self.items.append(item)
        self._touch()
        return item

    def remove_item(self, product_id: str) -> bool:
        before = len(self.items)
        self.items = [i for i in self.items if i.product_id != product_id]
        removed = len(self.items) != before
        if removed:
            self._touch()
        return removed

    def update_item_quantity(self, product_id: str, quantity: int) -> bool:
        """Fija la cantidad; <= 0 quita la línea. False si no está en el carrito."""
        item = self.get_item(product_id)
        if item is None:
            return False
        if quantity <= 0:
            return self.remove_item(product_id)
        item.quantity = quantity
        self._touch()
        return True

    def replace_items(self, items: Iterable[tuple[ProductSnapshot, int]]) -> None:
        self.items = []
        for product, quantity in items:
            if quantity >= 1:
                self.add_item(product, quantity)
        self._touch()

    def clear(self) -> None:
        self.items = []
        self._touch()

    def _touch(self) -> None:
        self.updated_at = _utcnow()


# =============================================================================
# Registro de puntos
# =============================================================================


class TransactionType(str, Enum):
    EARN = "earn"
    SPEND = "spend"
    BONUS = "bonus"
    PENALTY = "penalty"


class TransactionSource(str, Enum):
    DOWNLOAD = "download"
    REGISTRATION = "registration"
    REFERRAL = "referral"
    ADMIN = "admin"
    PURCHASE = "purchase"
    REFUND = "refund"


CREDIT_TYPES = frozenset({TransactionType.EARN, TransactionType.BONUS})
DEBIT_TYPES = frozenset({TransactionType.SPEND, TransactionType.PENALTY})


@dataclass(frozen=True, slots=True)
class PointTransaction:
    """Registro inmutable de cada cambio en los puntos de un usuario."""

    user_id: UUID
    points: int
    type: TransactionType
    source: TransactionSource
    description: str
    balance_before: int
    balance_after: int
    level_before: MembershipLevel
    level_after: MembershipLevel
    metadata: dict[str, Any] = field(default_factory=dict)
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def level_changed(self) -> bool:
        return self.level_before != self.level_after


@dataclass(frozen=True, slots=True)
class PointsSummary:
    """earned = earn + bonus, spent = spend + penalty, balance = earned - spent."""

    total_earned: int = 0
    total_spent: int = 0
    transaction_count: int = 0

    @property
    def balance(self) -> int:
        return self.total_earned - self.total_spent

    @classmethod
    def from_transactions(cls, transactions: Iterable[PointTransaction]) -> "PointsSummary":
        earned = spent = count = 0
        for tx in transactions:
            count += 1
            if tx.type in CREDIT_TYPES:
                earned += abs(tx.points)
            elif tx.type in DEBIT_TYPES:
                spent += abs(tx.points)
        return cls(total_earned=earned, total_spent=spent, transaction_count=count)


@dataclass(frozen=True, slots=True)
class PointsSystemStats:
    total_transactions: int = 0
    total_points_earned: int = 0
    total_points_spent: int = 0
    unique_users: int = 0

    @property
    def net_points(self) -> int:
        return self.total_points_earned - self.total_points_spent
