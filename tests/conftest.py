"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Configure an isolated test environment (APP_ENV=test, temp dirs)
  - Reset process singletons between tests (settings, container, limiter)
  - Provide user factories backed by the in-memory repositories

Collaborators:
  - pytest: Test framework
  - moostyle.container: in-memory adapters in test env
  - moostyle.identity.auth_users: password hashing / tokens

Notes:
  - Fixtures are auto-discovered by pytest
  - Rate limiting is disabled by default; rate limit tests enable it
"""

import os
import sys
from pathlib import Path
from uuid import uuid4

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from moostyle.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None

os.environ.setdefault("APP_ENV", "test")

from moostyle.container import (  # noqa: E402
    get_cart_repository,
    get_user_repository,
    reset_container,
)
from moostyle.crosscutting.rate_limit import reset_rate_limiter  # noqa: E402
from moostyle.domain.membership import membership_for_points  # noqa: E402
from moostyle.identity.auth_users import create_access_token, hash_password  # noqa: E402
from moostyle.identity.users import User, UserRole  # noqa: E402

DEFAULT_PASSWORD = "Secret123"


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


def _reset_singletons() -> None:
    app_config.get_settings.cache_clear()
    reset_container()
    reset_rate_limiter()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """R: Each test gets its own settings, log dir, backup dir and store."""
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("SECURITY_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("BACKUP_DIR", str(tmp_path / "backups"))
    monkeypatch.setenv("RECOVERY_STEP_DELAY_SCALE", "0")
    monkeypatch.setenv("RATE_LIMIT_ENABLED", "false")
    _reset_singletons()
    yield tmp_path
    _reset_singletons()


# ============================================================================
# User factories
# ============================================================================


class UserFactory:
    """R: Creates users straight in the (in-memory) repository."""

    @staticmethod
    def create(
        *,
        role: UserRole = UserRole.USER,
        email: str | None = None,
        username: str | None = None,
        password: str = DEFAULT_PASSWORD,
        points: int = 0,
        is_active: bool = True,
    ) -> User:
        suffix = uuid4().hex[:8]
        user = get_user_repository().create(
            User(
                id=uuid4(),
                email=email or f"user-{suffix}@example.com",
                username=username or f"user_{suffix}",
                password_hash=hash_password(password),
                role=role,
                is_active=is_active,
                points=points,
                membership_level=membership_for_points(points),
            )
        )
        get_cart_repository().get_or_create(user.id)
        return user


@pytest.fixture
def user_factory() -> type[UserFactory]:
    return UserFactory


def _auth_headers_for(user: User) -> dict[str, str]:
    token, _ = create_access_token(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return _auth_headers_for


@pytest.fixture
def client():
    """R: TestClient over the full ASGI app (rate limit wrapper included)."""
    from fastapi.testclient import TestClient

    from moostyle.api.main import app

    return TestClient(app)
