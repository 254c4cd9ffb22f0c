"""
===============================================================================
TARJETA CRC — identity/auth_users.py
===============================================================================

Módulo:
    Autenticación de Usuarios (JWT)

Responsabilidades:
    - Hashear/verificar passwords (Argon2) y validar su fortaleza.
    - Emitir JWT de acceso con expiración e issuer "MooStyle".
    - Decodificar y validar JWT (firma, exp, iss, claims mínimos).
    - Resolver usuario actual (token -> user_id -> repo) y rechazar baneados.
    - Exponer dependencias FastAPI (require_user, require_admin, require_role).
    - Extraer token desde Authorization: Bearer o cookie.

Colaboradores:
    - crosscutting.config.get_settings: secretos, TTL, cookie settings.
    - crosscutting.error_responses: unauthorized/forbidden/account_suspended.
    - container.get_user_repository: lookup de usuarios (Postgres o in-memory).
    - identity.users: User / UserRole / ADMIN_ROLES.

Decisiones de diseño:
    - La lógica criptográfica vive acá (borde de identidad), NO en dominio.
    - Un usuario baneado recibe 403 con ban_reason/banned_at: el frontend
      muestra el motivo en vez de un "token inválido".
    - No loguear secretos ni tokens.
===============================================================================
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import UUID

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from fastapi import Header, Request

from ..context import set_user_context
from ..crosscutting.config import get_settings
from ..crosscutting.error_responses import account_suspended, forbidden, unauthorized
from ..crosscutting.logger import logger
from ..domain.repositories import UserRepository
from .users import ADMIN_ROLES, User, UserRole

# ---------------------------------------------------------------------------
# Constantes
# ---------------------------------------------------------------------------

JWT_ALGORITHM: str = "HS256"

DEFAULT_ACCESS_TOKEN_COOKIE: str = "access_token"

CLAIM_SUB: str = "sub"
CLAIM_EMAIL: str = "email"
CLAIM_ROLE: str = "role"
CLAIM_IAT: str = "iat"
CLAIM_EXP: str = "exp"
CLAIM_TYP: str = "typ"
CLAIM_ISS: str = "iss"

TOKEN_TYPE_ACCESS: str = "access"

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128

SUSPENDED_MESSAGE = (
    "Your account has been suspended. Please contact support for more information."
)

_password_hasher = PasswordHasher()


# ---------------------------------------------------------------------------
# Contratos internos
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """Settings de auth (snapshot)."""

    jwt_secret: str
    jwt_access_ttl_minutes: int
    jwt_cookie_name: str
    jwt_cookie_secure: bool
    jwt_issuer: str


@dataclass(frozen=True, slots=True)
class TokenPayload:
    """Payload mínimo que esperamos de un access token."""

    user_id: str
    email: str
    role: UserRole


def get_auth_settings() -> AuthSettings:
    s = get_settings()
    return AuthSettings(
        jwt_secret=s.jwt_secret,
        jwt_access_ttl_minutes=s.jwt_access_ttl_minutes,
        jwt_cookie_name=s.jwt_cookie_name,
        jwt_cookie_secure=s.jwt_cookie_secure,
        jwt_issuer=s.jwt_issuer,
    )


def _users() -> UserRepository:
    # Import diferido: container importa casos de uso que importan este módulo.
    from ..container import get_user_repository

    return get_user_repository()


# ---------------------------------------------------------------------------
# Passwords (Argon2)
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    """Hashea un password usando Argon2."""
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verifica password vs hash almacenado."""
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def validate_password_strength(password: str) -> list[str]:
    """
    Regla de registro: 8-128 caracteres con mayúscula, minúscula y dígito.

    Retorna la lista de problemas (vacía = válido).
    """
    problems: list[str] = []
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        problems.append(
            f"Password must be between {PASSWORD_MIN_LENGTH} and "
            f"{PASSWORD_MAX_LENGTH} characters"
        )
    if not re.search(r"[a-z]", password):
        problems.append("Password must contain a lowercase letter")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain an uppercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain a digit")
    return problems


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _raise_if_banned(user: User) -> None:
    if not user.is_active:
        raise account_suspended(
            SUSPENDED_MESSAGE,
            ban_reason=user.ban_reason,
            banned_at=user.banned_at.isoformat() if user.banned_at else None,
        )


def authenticate_user(email: str, password: str) -> User | None:
    """Valida credenciales y retorna el usuario activo o None.

    - No diferenciamos "usuario no existe" vs "password incorrecto".
    - Un usuario baneado con password correcto recibe 403 con el motivo.
    """
    normalized_email = normalize_email(email)
    if not normalized_email:
        return None

    user = _users().get_by_email(normalized_email)
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    if not user.is_active:
        logger.warning("Auth rechazada: cuenta suspendida", extra={"user_id": str(user.id)})
        _raise_if_banned(user)

    return user


def record_login(user: User) -> None:
    """Sella last_login_at (best-effort: un fallo no bloquea el login)."""
    try:
        _users().record_login(user.id, datetime.now(timezone.utc))
    except Exception as exc:
        logger.warning(
            "No se pudo registrar last_login_at",
            extra={"user_id": str(user.id), "error": str(exc)},
        )


# ---------------------------------------------------------------------------
# Tokens JWT (emitir / decodificar)
# ---------------------------------------------------------------------------


def create_access_token(
    user: User, settings: AuthSettings | None = None
) -> tuple[str, int]:
    """Crea un JWT de acceso firmado. Retorna (token, expires_in_seconds)."""
    auth_settings = settings or get_auth_settings()

    now = datetime.now(timezone.utc)
    expires_in = int(auth_settings.jwt_access_ttl_minutes * 60)

    payload: dict[str, object] = {
        CLAIM_SUB: str(user.id),
        CLAIM_EMAIL: user.email,
        CLAIM_ROLE: user.role.value,
        CLAIM_IAT: int(now.timestamp()),
        CLAIM_EXP: int((now + timedelta(seconds=expires_in)).timestamp()),
        CLAIM_TYP: TOKEN_TYPE_ACCESS,
        CLAIM_ISS: auth_settings.jwt_issuer,
    }

    token = jwt.encode(payload, auth_settings.jwt_secret, algorithm=JWT_ALGORITHM)
    return token, expires_in


def decode_access_token(
    token: str, settings: AuthSettings | None = None
) -> TokenPayload:
    """Decodifica y valida un JWT de acceso (401 si expiró, firma o issuer inválidos)."""
    auth_settings = settings or get_auth_settings()

    try:
        payload = jwt.decode(
            token,
            auth_settings.jwt_secret,
            algorithms=[JWT_ALGORITHM],
            issuer=auth_settings.jwt_issuer,
            options={
                "require": [CLAIM_SUB, CLAIM_EMAIL, CLAIM_ROLE, CLAIM_EXP, CLAIM_ISS],
            },
        )
    except jwt.ExpiredSignatureError as exc:
        raise unauthorized("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise unauthorized("Invalid token") from exc

    user_id = payload.get(CLAIM_SUB)
    email = payload.get(CLAIM_EMAIL)
    role_value = payload.get(CLAIM_ROLE)
    token_type = payload.get(CLAIM_TYP)

    if not user_id or not email or not role_value:
        raise unauthorized("Invalid token")

    if token_type is not None and token_type != TOKEN_TYPE_ACCESS:
        raise unauthorized("Invalid token type")

    try:
        role = UserRole(str(role_value))
    except ValueError as exc:
        raise unauthorized("Invalid token") from exc

    return TokenPayload(user_id=str(user_id), email=str(email), role=role)


def get_current_user(token: str) -> User:
    """Resuelve el usuario actual a partir del access token."""
    payload = decode_access_token(token)

    try:
        user_id = UUID(payload.user_id)
    except ValueError as exc:
        raise unauthorized("Invalid token") from exc

    user = _users().get_by_id(user_id)
    if not user:
        raise unauthorized("User not found")
    _raise_if_banned(user)
    return user


# ---------------------------------------------------------------------------
# Extracción de token (header/cookie)
# ---------------------------------------------------------------------------


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


def extract_access_token(request: Request, authorization: str | None) -> str | None:
    """Resuelve token desde Authorization o cookie."""
    token = _extract_bearer_token(authorization)
    if token:
        return token

    cookie_name = (
        get_auth_settings().jwt_cookie_name or ""
    ).strip() or DEFAULT_ACCESS_TOKEN_COOKIE
    return request.cookies.get(cookie_name)


# ---------------------------------------------------------------------------
# Dependencias FastAPI
# ---------------------------------------------------------------------------


def require_user() -> Callable:
    """Dependency FastAPI: requiere usuario autenticado y no baneado."""

    async def dependency(
        request: Request,
        authorization: str | None = Header(None, alias="Authorization"),
    ) -> User:
        token = extract_access_token(request, authorization)
        if not token:
            raise unauthorized("Access token required")

        user = get_current_user(token)
        # R: el middleware de security log lee el user_id desde acá.
        request.state.user = user
        set_user_context(str(user.id))
        return user

    return dependency


def require_role(
    *roles: UserRole | str, detail: str = "Insufficient permissions"
) -> Callable:
    """Dependency FastAPI: requiere alguno de los roles indicados."""
    allowed = frozenset(UserRole(r) for r in roles)

    async def dependency(
        request: Request,
        authorization: str | None = Header(None, alias="Authorization"),
    ) -> User:
        user = await require_user()(request, authorization)
        if user.role not in allowed:
            raise forbidden(detail)
        return user

    return dependency


def require_admin() -> Callable:
    """Dependency FastAPI: admin u owner."""
    return require_role(*ADMIN_ROLES, detail="Admin access required")
