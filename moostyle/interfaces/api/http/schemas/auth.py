"""
===============================================================================
TARJETA CRC — schemas/auth.py
===============================================================================

Módulo:
    Schemas HTTP para autenticación (/api/auth)

Responsabilidades:
    - Validar registro (email, username 3-30 [A-Za-z0-9_-], password).
    - Validar login, cambio de password y preferencias de notificación.
    - Respuesta de login/registro: token + usuario.
===============================================================================
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .common import (
    USERNAME_MAX,
    USERNAME_MIN,
    USERNAME_PATTERN,
    EnvelopeRes,
    UserRes,
)


class RegisterReq(BaseModel):
    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    username: str = Field(
        ..., min_length=USERNAME_MIN, max_length=USERNAME_MAX, pattern=USERNAME_PATTERN
    )
    password: str = Field(..., min_length=1, max_length=512)
    name: str | None = Field(default=None, max_length=100)

    @field_validator("email")
    @classmethod
    def normalizar_email(cls, v: str) -> str:
        return v.strip().lower()


class LoginReq(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=512)

    @field_validator("email")
    @classmethod
    def normalizar_email(cls, v: str) -> str:
        return v.strip().lower()


class AuthRes(EnvelopeRes):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRes


class NotificationSettingsReq(BaseModel):
    email_notifications: bool


class ChangePasswordReq(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=512)
    new_password: str = Field(..., min_length=1, max_length=512)
