"""
===============================================================================
MÓDULO: Helpers de paginación (page / limit)
===============================================================================

Objetivo
--------
Paginación simple y consistente para los listados del admin:
- `page` arranca en 1, `limit` se acota a [1, MAX_LIMIT]
- todo listado devuelve el mismo bloque `pagination`

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  PageRequest + Pagination

Responsabilidades:
  - Normalizar page/limit que llegan del query string
  - Traducir a LIMIT/OFFSET para los repositorios
  - Armar la metadata {page, limit, total, pages}
===============================================================================
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from pydantic import BaseModel, Field

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


class Pagination(BaseModel):
    page: int = Field(description="Current page (1-based)")
    limit: int = Field(description="Page size")
    total: int = Field(description="Total matching items")
    pages: int = Field(description="Total pages")


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @classmethod
    def of(cls, page: int | None, limit: int | None) -> "PageRequest":
        safe_page = max(1, int(page or 1))
        safe_limit = min(MAX_LIMIT, max(1, int(limit or DEFAULT_LIMIT)))
        return cls(page=safe_page, limit=safe_limit)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def describe(self, total: int) -> Pagination:
        pages = math.ceil(total / self.limit) if total > 0 else 0
        return Pagination(page=self.page, limit=self.limit, total=total, pages=pages)
