"""
===============================================================================
CART + DOWNLOAD USE CASE RESULTS (Shared Result / Error Models)
===============================================================================

Why (Context / Intención):
    - Los use cases devuelven resultados tipados en lugar de propagar excepciones.
    - El router mapea cada código a HTTP (400 / 404 / 429) en un único lugar.

-------------------------------------------------------------------------------
CRC CARD (Module-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Component:
    cart_results models (module)

Responsibilities:
    - CartErrorCode / CartError: errores de gestión del carrito.
    - DownloadErrorCode / DownloadError: errores del flujo de descarga
      (con retry_after para RATE_LIMITED).
    - CartResult y DownloadResult como contratos de salida.

Collaborators:
    - domain.entities: Cart, PointTransaction
    - domain.membership: MembershipLevel
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from ....domain.entities import Cart, PointTransaction
from ....domain.membership import MembershipLevel


class CartErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class CartError:
    code: CartErrorCode
    message: str
    resource: str | None = None


@dataclass
class CartResult:
    """Éxito: cart != None y error == None."""

    cart: Cart | None = None
    message: str = ""
    error: CartError | None = None


class DownloadErrorCode(str, Enum):
    """
    Códigos del flujo de descarga.

      - EMPTY_CART: no hay items.
      - INVALID_COUNT: cantidad <= 0 o distinta a la que vio el cliente.
      - RATE_LIMITED: hubo una descarga dentro de la ventana (retry_after > 0).
      - NOT_FOUND: usuario o carrito inexistente.
    """

    EMPTY_CART = "EMPTY_CART"
    INVALID_COUNT = "INVALID_COUNT"
    RATE_LIMITED = "RATE_LIMITED"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class DownloadError:
    code: DownloadErrorCode
    message: str
    retry_after: int | None = None


@dataclass(frozen=True)
class DownloadedItem:
    product_id: str
    name: str
    download_url: str | None
    quantity: int


@dataclass
class DownloadResult:
    points_awarded: int = 0
    total_points: int = 0
    previous_level: MembershipLevel | None = None
    membership_level: MembershipLevel | None = None
    level_changed: bool = False
    items_downloaded: int = 0
    transaction: PointTransaction | None = None
    items: List[DownloadedItem] = field(default_factory=list)
    error: DownloadError | None = None
