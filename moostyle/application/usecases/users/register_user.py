"""
===============================================================================
USE CASE: Register User
===============================================================================

Business Goal:
    Crear una cuenta nueva con 0 puntos y nivel Bronze, y su carrito vacío.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    RegisterUserUseCase

Responsibilities:
    - Normalizar email y validar fortaleza de password.
    - Rechazar email/username duplicados (CONFLICT).
    - Hashear password (Argon2) y persistir usuario + carrito.

Collaborators:
    - UserRepository, CartRepository
    - identity.auth_users (hash_password, validate_password_strength)
===============================================================================
"""

from __future__ import annotations

from uuid import uuid4

from ....crosscutting.logger import logger
from ....domain.membership import MembershipLevel
from ....domain.repositories import CartRepository, UserRepository
from ....identity.auth_users import (
    hash_password,
    normalize_email,
    validate_password_strength,
)
from ....identity.users import User, UserRole
from .user_results import UserError, UserErrorCode, UserResult


class RegisterUserUseCase:
    def __init__(
        self, user_repository: UserRepository, cart_repository: CartRepository
    ) -> None:
        self._users = user_repository
        self._carts = cart_repository

    def execute(
        self,
        *,
        email: str,
        username: str,
        password: str,
        name: str | None = None,
    ) -> UserResult:
        email = normalize_email(email)
        username = username.strip()

        problems = validate_password_strength(password)
        if problems:
            return UserResult(
                error=UserError(
                    UserErrorCode.VALIDATION_ERROR,
                    "Password does not meet requirements",
                    errors=problems,
                )
            )

        if self._users.get_by_email(email) is not None:
            return UserResult(
                error=UserError(UserErrorCode.CONFLICT, "Email already registered")
            )
        if self._users.get_by_username(username) is not None:
            return UserResult(
                error=UserError(UserErrorCode.CONFLICT, "Username already taken")
            )

        user = self._users.create(
            User(
                id=uuid4(),
                email=email,
                username=username,
                name=(name or "").strip() or None,
                password_hash=hash_password(password),
                role=UserRole.USER,
                points=0,
                membership_level=MembershipLevel.BRONZE,
            )
        )
        self._carts.get_or_create(user.id)

        logger.info("User registered", extra={"user_id": str(user.id)})
        return UserResult(user=user)
