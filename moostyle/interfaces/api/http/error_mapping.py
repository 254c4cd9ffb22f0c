"""
===============================================================================
TARJETA CRC — error_mapping.py (UseCase Error -> HTTP RFC7807)
===============================================================================

Responsabilidades:
  - Traducir códigos de error de casos de uso a HTTP Exceptions RFC7807.
  - Centralizar el mapeo para evitar duplicación en routers.
  - Mantener el dominio libre de HTTP.

Reglas:
  - Los use cases devuelven errores tipados (code + message).
  - La API traduce a RFC7807 (crosscutting.error_responses).

Colaboradores:
  - application.usecases.* (CartErrorCode, DownloadErrorCode, UserErrorCode,
    AdminErrorCode)
  - crosscutting.error_responses
===============================================================================
"""

from __future__ import annotations

from typing import NoReturn

from moostyle.application.usecases import (
    AdminError,
    AdminErrorCode,
    CartError,
    CartErrorCode,
    DownloadError,
    DownloadErrorCode,
    UserError,
    UserErrorCode,
)
from moostyle.crosscutting.error_responses import (
    AppHTTPException,
    ErrorCode,
    bad_request,
    conflict,
    forbidden,
    rate_limited,
    unauthorized,
    validation_error,
)


def _not_found(message: str) -> AppHTTPException:
    return AppHTTPException(404, ErrorCode.NOT_FOUND, message)


def raise_cart_error(error: CartError) -> NoReturn:
    if error.code == CartErrorCode.NOT_FOUND:
        raise _not_found(error.message)
    raise validation_error(error.message)


def raise_download_error(error: DownloadError) -> NoReturn:
    """
    Traduce DownloadErrorCode -> HTTP.

      - EMPTY_CART / INVALID_COUNT -> 400
      - RATE_LIMITED -> 429 + Retry-After (segundos restantes de la ventana)
      - NOT_FOUND -> 404
    """
    if error.code == DownloadErrorCode.RATE_LIMITED:
        raise rate_limited(error.retry_after or 1, detail=error.message)
    if error.code == DownloadErrorCode.EMPTY_CART:
        raise bad_request(error.message, code=ErrorCode.EMPTY_CART)
    if error.code == DownloadErrorCode.INVALID_COUNT:
        raise bad_request(error.message, code=ErrorCode.INVALID_COUNT)
    if error.code == DownloadErrorCode.NOT_FOUND:
        raise _not_found(error.message)
    raise bad_request(error.message)


def raise_user_error(error: UserError) -> NoReturn:
    if error.code == UserErrorCode.CONFLICT:
        raise conflict(error.message)
    if error.code == UserErrorCode.UNAUTHORIZED:
        raise unauthorized(error.message)
    if error.code == UserErrorCode.NOT_FOUND:
        raise _not_found(error.message)
    raise validation_error(
        error.message, errors=[{"field": "password", "msg": m} for m in error.errors]
    )


def raise_admin_error(error: AdminError) -> NoReturn:
    if error.code == AdminErrorCode.FORBIDDEN:
        raise forbidden(error.message)
    if error.code == AdminErrorCode.CONFLICT:
        raise conflict(error.message)
    if error.code == AdminErrorCode.NOT_FOUND:
        raise _not_found(error.message)
    # Fallback seguro: si aparece un código nuevo, lo tratamos como 422
    raise validation_error(error.message)
