"""
===============================================================================
TARJETA CRC — moostyle/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Componer dependencias (repositorios, unit of work, servicios) siguiendo DIP.
  - Exponer factories para FastAPI (Depends) y para los scripts.
  - Mantener singletons con caching (lru_cache) para recursos compartidos.
  - Centralizar decisiones runtime basadas en Settings (config).

Colaboradores:
  - crosscutting.config.get_settings
  - domain.repositories.* (puertos)
  - infrastructure.repositories.* (implementaciones)
  - application.usecases.* (casos de uso)
  - application.security / recovery / backup

Patrones aplicados:
  - Composition Root
  - Dependency Inversion (use cases dependen de puertos)
  - Lazy singletons con lru_cache

Notas:
  - Este archivo NO contiene lógica de negocio.
  - Este archivo NO debe depender de FastAPI (solo expone factories).
  - En test, todos los repos in-memory comparten un único InMemoryStore
    (el download ve el mismo carrito que /api/cart/add).
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from .application.backup import BackupService
from .application.recovery import DisasterRecovery
from .application.security import (
    AuditTrail,
    SecurityMetrics,
    get_audit_trail,
    get_security_log_writer,
    get_security_metrics,
)
from .application.usecases import (
    AdminStatsUseCase,
    AdminUserManagementUseCase,
    DownloadCartUseCase,
    ManageAccountUseCase,
    ManageCartUseCase,
    RegisterUserUseCase,
)
from .crosscutting.config import get_settings
from .domain.repositories import (
    AuditEventRepository,
    CartRepository,
    PointsUnitOfWork,
    PointTransactionRepository,
    UserRepository,
)
from .infrastructure.repositories import (
    InMemoryAuditEventRepository,
    InMemoryCartRepository,
    InMemoryPointsUnitOfWork,
    InMemoryPointTransactionRepository,
    InMemoryStore,
    InMemoryUserRepository,
    PostgresAuditEventRepository,
    PostgresCartRepository,
    PostgresPointsUnitOfWork,
    PostgresPointTransactionRepository,
    PostgresUserRepository,
)
from .infrastructure.services import FernetBackupCipher

# =============================================================================
# Helpers internos
# =============================================================================


def _is_test_env() -> bool:
    """
    Determina si estamos en entorno de test.

    Regla:
      - app_env ∈ {"test", "testing", "ci"} => se favorecen in-memory adapters.
    """
    env = get_settings().app_env.strip().lower()
    return env in {"test", "testing", "ci"}


@lru_cache(maxsize=1)
def get_in_memory_store() -> InMemoryStore:
    """Store compartido por todos los repos in-memory del proceso."""
    return InMemoryStore()


# =============================================================================
# Repositorios (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_user_repository() -> UserRepository:
    """Repositorio de usuarios (in-memory en test; Postgres en runtime)."""
    if _is_test_env():
        return InMemoryUserRepository(get_in_memory_store())
    return PostgresUserRepository()


@lru_cache(maxsize=1)
def get_cart_repository() -> CartRepository:
    """Repositorio de carritos."""
    if _is_test_env():
        return InMemoryCartRepository(get_in_memory_store())
    return PostgresCartRepository()


@lru_cache(maxsize=1)
def get_point_transaction_repository() -> PointTransactionRepository:
    """Ledger de puntos (append-only)."""
    if _is_test_env():
        return InMemoryPointTransactionRepository(get_in_memory_store())
    return PostgresPointTransactionRepository()


@lru_cache(maxsize=1)
def get_audit_repository() -> AuditEventRepository:
    """Repositorio de auditoría."""
    if _is_test_env():
        return InMemoryAuditEventRepository(get_in_memory_store())
    return PostgresAuditEventRepository()


@lru_cache(maxsize=1)
def get_points_unit_of_work() -> PointsUnitOfWork:
    """Unit of work de puntos (download + ajustes admin)."""
    if _is_test_env():
        return InMemoryPointsUnitOfWork(get_in_memory_store())
    return PostgresPointsUnitOfWork()


# =============================================================================
# Servicios (singletons)
# =============================================================================


def get_security_metrics_service() -> SecurityMetrics:
    return get_security_metrics()


def get_audit_trail_service() -> AuditTrail:
    return get_audit_trail()


@lru_cache(maxsize=1)
def get_disaster_recovery() -> DisasterRecovery:
    """Runbooks de recuperación (delays escalados por Settings)."""
    settings = get_settings()
    return DisasterRecovery(
        get_security_log_writer(),
        delay_scale=settings.recovery_step_delay_scale,
    )


@lru_cache(maxsize=1)
def get_backup_service() -> BackupService:
    """
    Backups cifrados.

    Regla:
      - Sin BACKUP_ENCRYPTION_KEY fuera de producción se usa una key efímera
        (Settings ya exige la key en producción).
    """
    settings = get_settings()
    return BackupService(
        settings.backup_dir,
        cipher=FernetBackupCipher(
            settings.backup_encryption_key,
            allow_ephemeral=not settings.is_production(),
        ),
        user_repository=get_user_repository(),
        log_writer=get_security_log_writer(),
        app_env=settings.app_env,
        config_summary={
            "download_window_seconds": settings.download_window_seconds,
            "points_per_item": settings.points_per_item,
            "rate_limit_enabled": settings.rate_limit_enabled,
            "allowed_origins": settings.get_allowed_origins_list(),
        },
    )


# =============================================================================
# Casos de uso (factory por request)
# =============================================================================


def get_register_user_use_case() -> RegisterUserUseCase:
    """Caso de uso: registrar usuario + carrito."""
    return RegisterUserUseCase(
        user_repository=get_user_repository(),
        cart_repository=get_cart_repository(),
    )


def get_manage_account_use_case() -> ManageAccountUseCase:
    """Caso de uso: perfil, password, notificaciones, stats y puntos."""
    return ManageAccountUseCase(
        user_repository=get_user_repository(),
        transaction_repository=get_point_transaction_repository(),
    )


def get_manage_cart_use_case() -> ManageCartUseCase:
    """Caso de uso: operaciones de carrito."""
    return ManageCartUseCase(cart_repository=get_cart_repository())


def get_download_cart_use_case() -> DownloadCartUseCase:
    """Caso de uso: descarga del carrito (puntos + vaciado atómico)."""
    settings = get_settings()
    return DownloadCartUseCase(
        get_points_unit_of_work(),
        window_seconds=settings.download_window_seconds,
        points_per_item=settings.points_per_item,
    )


def get_admin_user_management_use_case() -> AdminUserManagementUseCase:
    """Caso de uso: gestión de usuarios desde el panel admin."""
    return AdminUserManagementUseCase(
        user_repository=get_user_repository(),
        unit_of_work=get_points_unit_of_work(),
    )


def get_admin_stats_use_case() -> AdminStatsUseCase:
    """Caso de uso: estadísticas del dashboard y listados admin."""
    return AdminStatsUseCase(
        user_repository=get_user_repository(),
        cart_repository=get_cart_repository(),
        transaction_repository=get_point_transaction_repository(),
    )


def reset_container() -> None:
    """Limpia los singletons (tests)."""
    for factory in (
        get_in_memory_store,
        get_user_repository,
        get_cart_repository,
        get_point_transaction_repository,
        get_audit_repository,
        get_points_unit_of_work,
        get_disaster_recovery,
        get_backup_service,
        get_security_log_writer,
        get_security_metrics,
        get_audit_trail,
    ):
        factory.cache_clear()
