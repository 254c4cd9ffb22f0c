"""
CRC — domain/membership.py

Name
- Niveles de membresía

Responsibilities
- Definir los niveles ordenados (Bronze < Silver < Gold < Diamond).
- Derivar el nivel a partir del total de puntos (función pura).

Collaborators
- identity.users.User (guarda el nivel derivado)
- application.usecases.cart.download_cart (recalcula tras sumar puntos)
- scripts/recompute_memberships.py (reparación masiva)

Constraints
- Umbrales: Bronze 0-29, Silver 30-79, Gold 80-199, Diamond 200+.
- Un total negativo es inválido (los puntos nunca bajan de cero).
"""

from __future__ import annotations

from enum import Enum
from typing import Final


class MembershipLevel(str, Enum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    DIAMOND = "Diamond"


# Umbral más alto primero: gana el primer match.
MEMBERSHIP_THRESHOLDS: Final[tuple[tuple[int, MembershipLevel], ...]] = (
    (200, MembershipLevel.DIAMOND),
    (80, MembershipLevel.GOLD),
    (30, MembershipLevel.SILVER),
    (0, MembershipLevel.BRONZE),
)


def membership_for_points(points: int) -> MembershipLevel:
    """Nivel correspondiente a un total de puntos."""
    if points < 0:
        raise ValueError("points must be >= 0")
    for threshold, level in MEMBERSHIP_THRESHOLDS:
        if points >= threshold:
            return level
    return MembershipLevel.BRONZE


def points_to_next_level(points: int) -> int | None:
    """Puntos que faltan para el próximo nivel (None si ya es Diamond)."""
    current = membership_for_points(points)
    for threshold, level in reversed(MEMBERSHIP_THRESHOLDS):
        if threshold > points:
            return threshold - points
        if level == current and level == MembershipLevel.DIAMOND:
            return None
    return None
