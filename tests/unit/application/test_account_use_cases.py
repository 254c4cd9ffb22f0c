"""
Name: Register / Manage Account Use Case Tests

Responsibilities:
  - Registration: password rules, duplicate email/username, cart creation
  - Username change, password change, notification settings
  - Stats, points history and summary
"""

from uuid import uuid4

import pytest

from moostyle.application.usecases.users import (
    ManageAccountUseCase,
    RegisterUserUseCase,
    UserErrorCode,
)
from moostyle.domain.entities import PointTransaction, TransactionSource, TransactionType
from moostyle.domain.membership import MembershipLevel
from moostyle.identity.auth_users import verify_password
from moostyle.infrastructure.repositories.in_memory import (
    InMemoryCartRepository,
    InMemoryPointTransactionRepository,
    InMemoryStore,
    InMemoryUserRepository,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def register(store) -> RegisterUserUseCase:
    return RegisterUserUseCase(InMemoryUserRepository(store), InMemoryCartRepository(store))


@pytest.fixture
def account(store) -> ManageAccountUseCase:
    return ManageAccountUseCase(
        InMemoryUserRepository(store), InMemoryPointTransactionRepository(store)
    )


def _register(register, **overrides):
    data = {"email": "Cow@Example.com", "username": "moo_fan", "password": "Secret123"}
    data.update(overrides)
    return register.execute(**data)


def test_register_creates_bronze_user_with_cart(register, store):
    result = _register(register)

    assert result.error is None
    user = result.user
    assert user.email == "cow@example.com"
    assert user.points == 0
    assert user.membership_level == MembershipLevel.BRONZE
    assert user.id in store.carts


def test_register_rejects_weak_password(register):
    result = _register(register, password="short")

    assert result.error.code == UserErrorCode.VALIDATION_ERROR
    assert result.error.errors


def test_register_rejects_duplicate_email(register):
    _register(register)
    result = _register(register, username="other_name")

    assert result.error.code == UserErrorCode.CONFLICT
    assert "Email" in result.error.message


def test_register_rejects_duplicate_username_case_insensitive(register):
    _register(register)
    result = _register(register, email="second@example.com", username="MOO_FAN")

    assert result.error.code == UserErrorCode.CONFLICT


def test_update_username_conflict(register, account):
    first = _register(register).user
    _register(register, email="b@example.com", username="taken")

    result = account.update_username(first, "Taken")

    assert result.error.code == UserErrorCode.CONFLICT


def test_change_password_requires_current(register, account):
    user = _register(register).user

    wrong = account.change_password(
        user, current_password="nope", new_password="NewSecret1"
    )
    assert wrong.error.code == UserErrorCode.UNAUTHORIZED

    ok = account.change_password(
        user, current_password="Secret123", new_password="NewSecret1"
    )
    assert ok.error is None
    assert verify_password("NewSecret1", ok.user.password_hash)


def test_change_password_validates_new_password(register, account):
    user = _register(register).user
    result = account.change_password(
        user, current_password="Secret123", new_password="alllowercase"
    )
    assert result.error.code == UserErrorCode.VALIDATION_ERROR


def test_update_notifications(register, account):
    user = _register(register).user
    result = account.update_notifications(user, email_notifications=False)
    assert result.user.notification_settings["email_notifications"] is False


def _earn(user_id, points, *, tx_type=TransactionType.EARN, source=TransactionSource.DOWNLOAD):
    return PointTransaction(
        user_id=user_id,
        points=points,
        type=tx_type,
        source=source,
        description="test",
        balance_before=0,
        balance_after=abs(points),
        level_before=MembershipLevel.BRONZE,
        level_after=MembershipLevel.BRONZE,
    )


def test_stats_and_points_views(register, account, store):
    user = _register(register).user
    transactions = InMemoryPointTransactionRepository(store)
    transactions.record(_earn(user.id, 4))
    transactions.record(_earn(user.id, 2))
    transactions.record(
        _earn(user.id, -1, tx_type=TransactionType.PENALTY, source=TransactionSource.ADMIN)
    )
    transactions.record(_earn(uuid4(), 10))

    stats = account.get_stats(user)
    assert stats.total_downloads == 2
    assert stats.points_to_next_level == 30

    history = account.points_history(user.id, limit=2, offset=0)
    assert history.total == 3
    assert len(history.transactions) == 2

    summary = account.points_summary(user.id)
    assert (summary.total_earned, summary.total_spent, summary.balance) == (6, 1, 5)
