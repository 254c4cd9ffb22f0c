"""
Name: Download Cart Use Case Tests

Responsibilities:
  - Points award (2 per item, by quantity) and level recompute
  - Cart cleared + exactly one ledger entry per download
  - Download window (RATE_LIMITED with retry_after)
  - EMPTY_CART / INVALID_COUNT / NOT_FOUND paths leave state untouched
  - A failing write rolls back everything; concurrent downloads award once
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from moostyle.application.usecases.cart import DownloadCartUseCase, DownloadErrorCode
from moostyle.domain.entities import ProductSnapshot, TransactionSource, TransactionType
from moostyle.domain.membership import MembershipLevel, membership_for_points
from moostyle.identity.users import User
from moostyle.infrastructure.repositories.in_memory import (
    InMemoryCartRepository,
    InMemoryPointsUnitOfWork,
    InMemoryPointTransactionRepository,
    InMemoryStore,
    InMemoryUserRepository,
)

pytestmark = pytest.mark.unit

NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


class Env:
    def __init__(self) -> None:
        self.store = InMemoryStore()
        self.users = InMemoryUserRepository(self.store)
        self.carts = InMemoryCartRepository(self.store)
        self.transactions = InMemoryPointTransactionRepository(self.store)
        self.now = NOW
        self.use_case = DownloadCartUseCase(
            InMemoryPointsUnitOfWork(self.store),
            window_seconds=300,
            points_per_item=2,
            clock=lambda: self.now,
        )

    def user(self, *, points: int = 0, last_download_at=None) -> User:
        user = self.users.create(
            User(
                id=uuid4(),
                email=f"{uuid4().hex[:6]}@example.com",
                username=f"u_{uuid4().hex[:6]}",
                password_hash="x",
                points=points,
                membership_level=membership_for_points(points),
                last_download_at=last_download_at,
            )
        )
        self.carts.get_or_create(user.id)
        return user

    def fill(self, user: User, *quantities: int) -> None:
        cart = self.carts.get_or_create(user.id)
        for index, quantity in enumerate(quantities):
            cart.add_item(
                ProductSnapshot(
                    product_id=f"mod-{index}",
                    name=f"Mod {index}",
                    download_url=f"https://cdn.example.com/mod-{index}.zip",
                ),
                quantity,
            )
        self.carts.save(cart)


@pytest.fixture
def env() -> Env:
    return Env()


def test_download_awards_points_by_quantity_and_clears_cart(env):
    user = env.user()
    env.fill(user, 2, 1)

    result = env.use_case.execute(user_id=user.id)

    assert result.error is None
    assert result.items_downloaded == 3
    assert result.points_awarded == 6
    assert result.total_points == 6
    assert [item.product_id for item in result.items] == ["mod-0", "mod-1"]

    stored = env.users.get_by_id(user.id)
    assert stored.points == 6
    assert stored.last_download_at == NOW
    assert env.carts.get_for_user(user.id).is_empty

    ledger = env.transactions.list_for_user(user.id)
    assert len(ledger) == 1
    tx = ledger[0]
    assert tx.type == TransactionType.EARN
    assert tx.source == TransactionSource.DOWNLOAD
    assert (tx.balance_before, tx.balance_after) == (0, 6)
    assert tx.metadata["item_count"] == 3


def test_download_recomputes_membership_level(env):
    user = env.user(points=26)
    env.fill(user, 2)

    result = env.use_case.execute(user_id=user.id)

    assert result.previous_level == MembershipLevel.BRONZE
    assert result.membership_level == MembershipLevel.SILVER
    assert result.level_changed is True
    assert env.users.get_by_id(user.id).membership_level == MembershipLevel.SILVER


def test_download_inside_window_is_rate_limited(env):
    user = env.user(last_download_at=NOW - timedelta(seconds=100))
    env.fill(user, 1)

    result = env.use_case.execute(user_id=user.id)

    assert result.error.code == DownloadErrorCode.RATE_LIMITED
    assert result.error.retry_after == 200
    assert env.carts.get_for_user(user.id).total_items == 1
    assert env.transactions.count_for_user(user.id) == 0


def test_window_is_checked_before_empty_cart(env):
    user = env.user(last_download_at=NOW - timedelta(seconds=10))

    result = env.use_case.execute(user_id=user.id)

    assert result.error.code == DownloadErrorCode.RATE_LIMITED


def test_download_after_window_is_allowed(env):
    user = env.user(last_download_at=NOW - timedelta(seconds=300))
    env.fill(user, 1)

    assert env.use_case.execute(user_id=user.id).error is None


def test_empty_cart_is_rejected(env):
    user = env.user()

    result = env.use_case.execute(user_id=user.id)

    assert result.error.code == DownloadErrorCode.EMPTY_CART
    assert env.users.get_by_id(user.id).last_download_at is None


def test_expected_count_mismatch_is_rejected(env):
    user = env.user()
    env.fill(user, 2)

    result = env.use_case.execute(user_id=user.id, expected_item_count=1)

    assert result.error.code == DownloadErrorCode.INVALID_COUNT
    assert env.users.get_by_id(user.id).points == 0


def test_unknown_user_is_not_found(env):
    result = env.use_case.execute(user_id=uuid4())
    assert result.error.code == DownloadErrorCode.NOT_FOUND


def test_second_download_is_blocked_until_window_passes(env):
    user = env.user()
    env.fill(user, 1)
    assert env.use_case.execute(user_id=user.id).error is None

    env.fill(user, 1)
    env.now = NOW + timedelta(seconds=60)
    blocked = env.use_case.execute(user_id=user.id)
    assert blocked.error.code == DownloadErrorCode.RATE_LIMITED

    env.now = NOW + timedelta(seconds=301)
    assert env.use_case.execute(user_id=user.id).error is None
    assert env.transactions.count_for_user(user.id) == 2


def test_failed_write_leaves_user_cart_and_ledger_untouched(env, monkeypatch):
    from moostyle.infrastructure.repositories.in_memory.points_uow import (
        InMemoryPointsSession,
    )

    user = env.user(points=10)
    env.fill(user, 2, 1)

    def broken_record(self, transaction):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr(InMemoryPointsSession, "record_transaction", broken_record)

    with pytest.raises(RuntimeError, match="ledger unavailable"):
        env.use_case.execute(user_id=user.id)

    stored = env.users.get_by_id(user.id)
    assert stored.points == 10
    assert stored.membership_level == MembershipLevel.BRONZE
    assert stored.last_download_at is None
    assert env.carts.get_for_user(user.id).total_items == 3
    assert env.transactions.list_for_user(user.id) == []


def test_concurrent_downloads_award_points_once(env):
    user = env.user()
    env.fill(user, 3)
    barrier = threading.Barrier(2)

    def download():
        barrier.wait()
        return env.use_case.execute(user_id=user.id)

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(lambda _: download(), range(2)))

    succeeded = [r for r in results if r.error is None]
    rejected = [r for r in results if r.error is not None]
    assert len(succeeded) == 1
    assert rejected[0].error.code == DownloadErrorCode.RATE_LIMITED

    assert env.users.get_by_id(user.id).points == 6
    assert env.transactions.count_for_user(user.id) == 1
    assert env.carts.get_for_user(user.id).is_empty
