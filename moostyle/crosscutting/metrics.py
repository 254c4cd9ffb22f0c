"""
===============================================================================
FILE: crosscutting/metrics.py
===============================================================================

CRC CARD (Module)
-------------------------------------------------------------------------------
Name:
    Métricas (Prometheus), observabilidad de bajo acoplamiento

Responsibilities:
    - Definir las métricas Prometheus del backend de la tienda.
    - Proveer funciones chicas y estables para registrar eventos/duraciones.
    - Mantener la cardinalidad baja (NO user_id, NO SQL completo, NO IDs dinámicos).
    - Exponer helpers para armar la respuesta de /metrics.

Collaborators:
    - crosscutting.middleware: latencia y conteo HTTP.
    - application.usecases.cart.download_cart: resultado de descargas, puntos.
    - application.security.suspicious: actividad sospechosa por tipo.
    - infrastructure.db.instrumentation: duración de queries.

Notes:
    - CollectorRegistry propio: los tests pueden importar el módulo varias veces
      sin errores "Duplicated timeseries" del registry por defecto.
    - La normalización de paths evita explosiones de cardinalidad.
===============================================================================
"""

from __future__ import annotations

import re

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_registry = CollectorRegistry()

# ------------------------
# HTTP
# ------------------------
_requests_total = Counter(
    "moostyle_requests_total",
    "Total HTTP requests",
    ["endpoint", "method", "status"],
    registry=_registry,
)

_request_latency = Histogram(
    "moostyle_request_latency_seconds",
    "HTTP request latency (seconds)",
    ["endpoint", "method"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=_registry,
)

# ------------------------
# Carrito / puntos
# ------------------------
_downloads_total = Counter(
    "moostyle_cart_downloads_total",
    "Cart download attempts by outcome",
    ["outcome"],
    registry=_registry,
)

_points_awarded_total = Counter(
    "moostyle_points_awarded_total",
    "Points credited to users",
    ["source"],
    registry=_registry,
)

# ------------------------
# Seguridad
# ------------------------
_suspicious_activity_total = Counter(
    "moostyle_suspicious_activity_total",
    "Suspicious requests detected",
    ["activity_type"],
    registry=_registry,
)

_rate_limited_total = Counter(
    "moostyle_rate_limited_total",
    "Requests rejected by the rate limiter",
    ["policy"],
    registry=_registry,
)

# ------------------------
# DB (baja cardinalidad)
# ------------------------
_db_query_duration = Histogram(
    "moostyle_db_query_duration_seconds",
    "Duration of DB statements by kind (SELECT/SELECT_FOR_UPDATE/...) and table",
    ["kind", "table"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
    registry=_registry,
)


def record_request_metrics(
    endpoint: str,
    method: str,
    status_code: int,
    latency_seconds: float,
) -> None:
    """Registra métricas HTTP.

    - endpoint se normaliza para acotar la cardinalidad.
    - status se agrupa en 2xx/3xx/4xx/5xx.
    """
    normalized = _normalize_endpoint(endpoint)
    _requests_total.labels(
        endpoint=normalized,
        method=method,
        status=_status_bucket(status_code),
    ).inc()
    _request_latency.labels(endpoint=normalized, method=method).observe(
        latency_seconds
    )


def record_download(outcome: str) -> None:
    _downloads_total.labels(outcome=outcome).inc()


def record_points_awarded(points: int, source: str = "download") -> None:
    if points > 0:
        _points_awarded_total.labels(source=source).inc(points)


def record_suspicious_activity(activity_type: str) -> None:
    _suspicious_activity_total.labels(activity_type=activity_type).inc()


def record_rate_limited(policy: str) -> None:
    _rate_limited_total.labels(policy=policy).inc()


def observe_db_query_duration(kind: str, table: str, seconds: float) -> None:
    _db_query_duration.labels(kind=kind, table=table).observe(seconds)


# -----------------------------------------------------------------------------
# Helpers de normalización
# -----------------------------------------------------------------------------

_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    flags=re.IGNORECASE,
)


def _normalize_endpoint(path: str) -> str:
    """Reemplaza UUIDs e ids numéricos por `{id}`."""
    path = _UUID_RE.sub("{id}", path)
    path = re.sub(r"/backups/[^/]+/verify", "/backups/{filename}/verify", path)
    return re.sub(r"/\d+", "/{id}", path)


def _status_bucket(code: int) -> str:
    if 200 <= code < 300:
        return "2xx"
    if 300 <= code < 400:
        return "3xx"
    if 400 <= code < 500:
        return "4xx"
    if 500 <= code < 600:
        return "5xx"
    return "other"


def get_metrics_response() -> tuple[bytes, str]:
    """Body y content-type para /metrics."""
    return generate_latest(_registry), CONTENT_TYPE_LATEST
