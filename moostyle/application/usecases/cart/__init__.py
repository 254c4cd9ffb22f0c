"""Cart use cases: gestión del carrito y descarga con puntos."""

from .cart_results import (
    CartError,
    CartErrorCode,
    CartResult,
    DownloadedItem,
    DownloadError,
    DownloadErrorCode,
    DownloadResult,
)
from .download_cart import DownloadCartUseCase
from .manage_cart import ManageCartUseCase

__all__ = [
    "CartError",
    "CartErrorCode",
    "CartResult",
    "DownloadedItem",
    "DownloadError",
    "DownloadErrorCode",
    "DownloadResult",
    "DownloadCartUseCase",
    "ManageCartUseCase",
]
