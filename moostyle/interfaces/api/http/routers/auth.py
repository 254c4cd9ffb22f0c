"""
===============================================================================
TARJETA CRC — interfaces/api/http/routers/auth.py
===============================================================================

Name:
    Auth Router (/api/auth)

Responsibilities:
    - Registro (usuario + carrito), login (JWT + cookie httpOnly), logout.
    - Perfil del usuario autenticado (/me, /profile).
    - Preferencias de notificación y cambio de password.
    - Métricas de login y auditoría best-effort.

Collaborators:
    - identity.auth_users (authenticate_user, create_access_token, record_login)
    - application.usecases (RegisterUserUseCase, ManageAccountUseCase)
    - application.security.SecurityMetrics (record_user_login)
    - schemas.auth / schemas.common
===============================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from moostyle.application.usecases import ManageAccountUseCase, RegisterUserUseCase
from moostyle.container import (
    get_manage_account_use_case,
    get_register_user_use_case,
    get_security_metrics_service,
)
from moostyle.crosscutting.error_responses import unauthorized
from moostyle.crosscutting.middleware import get_client_ip
from moostyle.domain import audit
from moostyle.identity.auth_users import DEFAULT_ACCESS_TOKEN_COOKIE as ACCESS_TOKEN_COOKIE
from moostyle.identity.auth_users import (
    authenticate_user,
    create_access_token,
    get_auth_settings,
    record_login,
)
from moostyle.identity.users import User

from ..dependencies import audit_failure, audit_success, current_user, emit
from ..error_mapping import raise_user_error
from ..schemas.auth import (
    AuthRes,
    ChangePasswordReq,
    LoginReq,
    NotificationSettingsReq,
    RegisterReq,
)
from ..schemas.common import EnvelopeRes, UserEnvelopeRes, UserRes

router = APIRouter(prefix="/auth", tags=["auth"])


# =============================================================================
# Helpers
# =============================================================================


def _set_auth_cookie(response: Response, token: str, expires_in: int) -> None:
    """Setea cookie httpOnly de acceso."""
    settings = get_auth_settings()
    cookie_name = settings.jwt_cookie_name or ACCESS_TOKEN_COOKIE
    response.set_cookie(
        key=cookie_name,
        value=token,
        httponly=True,
        secure=settings.jwt_cookie_secure,
        samesite="lax",
        max_age=expires_in,
        path="/",
    )


def _clear_auth_cookie(response: Response) -> None:
    """Elimina cookie de acceso (si existe)."""
    settings = get_auth_settings()
    cookie_name = settings.jwt_cookie_name or ACCESS_TOKEN_COOKIE
    response.delete_cookie(
        key=cookie_name,
        path="/",
        samesite="lax",
        secure=settings.jwt_cookie_secure,
    )


def _auth_response(user: User, response: Response, message: str) -> AuthRes:
    token, expires_in = create_access_token(user)
    _set_auth_cookie(response, token, expires_in)
    return AuthRes(
        message=message,
        access_token=token,
        expires_in=expires_in,
        user=UserRes.from_user(user),
    )


# =============================================================================
# Endpoints públicos
# =============================================================================


@router.post("/register", response_model=AuthRes, status_code=201)
def register(
    req: RegisterReq,
    request: Request,
    response: Response,
    use_case: RegisterUserUseCase = Depends(get_register_user_use_case),
):
    """Crea la cuenta (0 puntos, Bronze), su carrito y devuelve un token."""
    result = use_case.execute(
        email=req.email, username=req.username, password=req.password, name=req.name
    )
    if result.error is not None:
        audit_failure(
            request,
            "User Registration",
            None,
            error=result.error.message,
            error_type=result.error.code.value,
            request_data=req.model_dump(),
        )
        raise_user_error(result.error)

    user = result.user
    emit(audit.AUTH_REGISTER, user, target_id=user.id)
    audit_success(request, "User Registration", user, request_data=req.model_dump())
    return _auth_response(user, response, "User registered successfully")


@router.post("/login", response_model=AuthRes)
def login(req: LoginReq, request: Request, response: Response):
    """
    Inicia sesión y devuelve JWT (también como cookie httpOnly).

    - Credenciales inválidas -> 401 (sin distinguir email/password).
    - Cuenta suspendida -> 403 con ban_reason.
    """
    metrics = get_security_metrics_service()
    ip = get_client_ip(request)

    user = authenticate_user(req.email, req.password)
    if not user:
        metrics.record_user_login(None, ip, False)
        audit_failure(
            request,
            "User Login",
            None,
            error="Invalid credentials",
            error_type="UNAUTHORIZED",
            request_data=req.model_dump(),
        )
        raise unauthorized("Invalid email or password")

    record_login(user)
    metrics.record_user_login(str(user.id), ip, True)
    emit(audit.AUTH_LOGIN, user, target_id=user.id)
    return _auth_response(user, response, "Login successful")


@router.post("/logout", response_model=EnvelopeRes)
def logout(response: Response):
    """
    Cierra sesión.

    - Siempre borra la cookie (si estaba presente).
    - No requiere autenticación: es idempotente.
    """
    _clear_auth_cookie(response)
    return EnvelopeRes(message="Logged out successfully")


# =============================================================================
# Endpoints autenticados
# =============================================================================


@router.get("/me", response_model=UserEnvelopeRes)
def me(user: User = Depends(current_user)):
    """Devuelve el usuario autenticado (JWT o cookie)."""
    return UserEnvelopeRes(user=UserRes.from_user(user))


@router.get("/profile", response_model=UserEnvelopeRes)
def profile(user: User = Depends(current_user)):
    return UserEnvelopeRes(user=UserRes.from_user(user))


@router.put("/notification-settings", response_model=UserEnvelopeRes)
def update_notification_settings(
    req: NotificationSettingsReq,
    user: User = Depends(current_user),
    use_case: ManageAccountUseCase = Depends(get_manage_account_use_case),
):
    result = use_case.update_notifications(
        user, email_notifications=req.email_notifications
    )
    return UserEnvelopeRes(
        message="Notification settings updated", user=UserRes.from_user(result.user)
    )


@router.post("/change-password", response_model=EnvelopeRes)
def change_password(
    req: ChangePasswordReq,
    request: Request,
    user: User = Depends(current_user),
    use_case: ManageAccountUseCase = Depends(get_manage_account_use_case),
):
    """Cambia el password (401 si el actual no coincide, 422 si el nuevo es débil)."""
    result = use_case.change_password(
        user, current_password=req.current_password, new_password=req.new_password
    )
    if result.error is not None:
        audit_failure(
            request,
            "Password Change",
            user,
            error=result.error.message,
            error_type=result.error.code.value,
        )
        raise_user_error(result.error)

    emit(audit.AUTH_PASSWORD_CHANGED, user, target_id=user.id)
    audit_success(request, "Password Change", user, request_data=req.model_dump())
    return EnvelopeRes(message="Password changed successfully")
