"""
===============================================================================
TARJETA CRC — moostyle/context.py (Contexto por request)
===============================================================================

Responsabilidades:
  - Guardar en ContextVars los datos de correlación del request en curso:
    request_id, método, path, IP del cliente y usuario autenticado.
  - Entregarlos como dict para el JSONFormatter del logger.

Colaboradores:
  - crosscutting.middleware.RequestContextMiddleware: set_request_context /
    clear_context alrededor de cada request.
  - identity.auth_users.require_user: set_user_context.
  - crosscutting.logger: get_context_dict.

Restricciones:
  - Solo strings; "" significa "no disponible" y no se loguea.
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
http_method_var: ContextVar[str] = ContextVar("http_method", default="")
http_path_var: ContextVar[str] = ContextVar("http_path", default="")
client_ip_var: ContextVar[str] = ContextVar("client_ip", default="")
# R: vacío hasta que la dependencia de auth resuelve al usuario.
user_id_var: ContextVar[str] = ContextVar("user_id", default="")

# clave en el log -> variable
_LOG_FIELDS: dict[str, ContextVar[str]] = {
    "request_id": request_id_var,
    "method": http_method_var,
    "path": http_path_var,
    "client_ip": client_ip_var,
    "user_id": user_id_var,
}


def set_request_context(
    *, request_id: str = "", method: str = "", path: str = "", client_ip: str = ""
) -> None:
    request_id_var.set(request_id or "")
    http_method_var.set(method or "")
    http_path_var.set(path or "")
    client_ip_var.set(client_ip or "")
    user_id_var.set("")


def set_user_context(user_id: str) -> None:
    user_id_var.set(user_id or "")


def get_context_dict() -> dict[str, str]:
    return {key: value for key, var in _LOG_FIELDS.items() if (value := var.get())}


def clear_context() -> None:
    """Al cerrar el request: un worker async no debe heredar el contexto anterior."""
    for var in _LOG_FIELDS.values():
        var.set("")
