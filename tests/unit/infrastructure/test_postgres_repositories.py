"""
Name: Postgres Repository Tests

Responsibilities:
  - SQL shape and parameters sent by each repository (offline)
  - Row mapping back to domain objects (carts, ledger, users, audit events)
  - Aggregations (points summary, system stats, grouped counts)
  - Driver errors wrapped in DatabaseError

Notes:
  - FakeConnection answers by SQL fragment; no real DB involved
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from moostyle.crosscutting.exceptions import DatabaseError
from moostyle.domain.audit import AuditEvent
from moostyle.domain.entities import (
    Cart,
    ProductSnapshot,
    TransactionSource,
    TransactionType,
)
from moostyle.domain.membership import MembershipLevel
from moostyle.infrastructure.repositories.postgres import cart as cart_module
from moostyle.infrastructure.repositories.postgres import (
    point_transaction as tx_module,
)
from moostyle.infrastructure.repositories.postgres import user as user_module
from moostyle.infrastructure.repositories.postgres.audit_event import (
    PostgresAuditEventRepository,
)

pytestmark = pytest.mark.unit

NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


class _Cursor:
    def __init__(self, result=None):
        self._result = result

    def fetchone(self):
        if isinstance(self._result, list):
            return self._result[0] if self._result else None
        return self._result

    def fetchall(self):
        if self._result is None:
            return []
        return self._result if isinstance(self._result, list) else [self._result]


class FakeConnection:
    """Responde cada execute() con el primer resultado cuyo fragmento aparece en el SQL."""

    def __init__(self, responses=()):
        self._responses = list(responses)
        self.executed: list[tuple[str, tuple]] = []
        self.transactions = 0

    def execute(self, query, params=()):
        sql = " ".join(query.split())
        self.executed.append((sql, tuple(params)))
        for index, (fragment, result) in enumerate(self._responses):
            if fragment in sql:
                del self._responses[index]
                return _Cursor(result)
        return _Cursor()

    @contextmanager
    def transaction(self):
        self.transactions += 1
        yield

    def statements(self, prefix: str) -> list[tuple[str, tuple]]:
        return [(sql, p) for sql, p in self.executed if sql.startswith(prefix)]


class FakePool:
    def __init__(self, conn=None, error: Exception | None = None):
        self.conn = conn or FakeConnection()
        self.error = error

    @contextmanager
    def connection(self):
        if self.error is not None:
            raise self.error
        yield self.conn


def _use_pool(monkeypatch, module, pool: FakePool) -> FakePool:
    monkeypatch.setattr(module, "_get_pool", lambda: pool)
    return pool


# =============================================================================
# Carts
# =============================================================================
class TestPostgresCartRepository:
    def _cart_row(self, cart_id, user_id):
        return (cart_id, user_id, True, NOW, NOW)

    def _item_row(self, cart_id, product_id, quantity):
        return (cart_id, {"product_id": product_id, "name": product_id.upper()}, quantity, NOW)

    def test_load_cart_keeps_item_position_order(self):
        cart_id, user_id = uuid4(), uuid4()
        conn = FakeConnection(
            [
                ("FROM carts WHERE user_id", self._cart_row(cart_id, user_id)),
                (
                    "FROM cart_items",
                    [self._item_row(cart_id, "saddle", 2), self._item_row(cart_id, "bell", 1)],
                ),
            ]
        )

        cart = cart_module.load_cart(conn, user_id)

        assert [item.product_id for item in cart.items] == ["saddle", "bell"]
        assert cart.total_items == 3
        assert cart.items[0].product.name == "SADDLE"
        items_sql, items_params = conn.executed[1]
        assert "ORDER BY position ASC" in items_sql
        assert items_params == ([cart_id],)

    def test_load_cart_for_update_locks_the_row(self):
        conn = FakeConnection()

        assert cart_module.load_cart(conn, uuid4(), for_update=True) is None
        assert conn.executed[0][0].endswith("FOR UPDATE")
        assert len(conn.executed) == 1

    def test_write_cart_items_replaces_rows_in_order(self):
        cart = Cart(user_id=uuid4())
        cart.add_item(ProductSnapshot(product_id="saddle", name="Saddle"), 2)
        cart.add_item(ProductSnapshot(product_id="bell", name="Bell"))
        conn = FakeConnection()

        cart_module.write_cart_items(conn, cart)

        kinds = [sql.split()[0] for sql, _ in conn.executed]
        assert kinds == ["DELETE", "INSERT", "INSERT", "UPDATE"]
        inserts = conn.statements("INSERT INTO cart_items")
        assert [p[2] for _, p in inserts] == ["saddle", "bell"]
        assert [p[4] for _, p in inserts] == [2, 1]
        assert [p[5] for _, p in inserts] == [0, 1]
        assert inserts[0][1][3].obj["name"] == "Saddle"

    def test_write_cart_items_for_empty_cart_only_clears(self):
        cart = Cart(user_id=uuid4())
        conn = FakeConnection()

        cart_module.write_cart_items(conn, cart)

        assert conn.statements("INSERT") == []
        assert conn.executed[0] == ("DELETE FROM cart_items WHERE cart_id = %s", (cart.id,))

    def test_get_or_create_inserts_missing_cart(self, monkeypatch):
        cart_id, user_id = uuid4(), uuid4()
        conn = FakeConnection(
            [
                ("FROM carts WHERE user_id", None),
                ("FROM carts WHERE user_id", self._cart_row(cart_id, user_id)),
            ]
        )
        _use_pool(monkeypatch, cart_module, FakePool(conn))

        cart = cart_module.PostgresCartRepository().get_or_create(user_id)

        assert cart.id == cart_id
        assert cart.is_empty
        assert len(conn.statements("INSERT INTO carts")) == 1
        assert conn.transactions == 1

    def test_driver_error_is_wrapped(self, monkeypatch):
        _use_pool(monkeypatch, cart_module, FakePool(error=OSError("connection refused")))

        with pytest.raises(DatabaseError, match="get_for_user failed"):
            cart_module.PostgresCartRepository().get_for_user(uuid4())

    def test_list_carts_loads_items_for_every_cart(self, monkeypatch):
        first, second = uuid4(), uuid4()
        conn = FakeConnection(
            [
                (
                    "FROM carts ORDER BY",
                    [self._cart_row(first, uuid4()), self._cart_row(second, uuid4())],
                ),
                ("FROM cart_items", [self._item_row(second, "bell", 4)]),
            ]
        )
        _use_pool(monkeypatch, cart_module, FakePool(conn))

        carts = cart_module.PostgresCartRepository().list_carts(limit=2, offset=-5)

        assert [c.total_items for c in carts] == [0, 4]
        assert conn.executed[0][1] == (2, 0)


# =============================================================================
# Point transactions
# =============================================================================
class TestPostgresPointTransactionRepository:
    def _tx_row(self, **overrides):
        values = {
            "id": uuid4(),
            "user_id": uuid4(),
            "points": 6,
            "type": "earn",
            "source": "download",
            "description": "Downloaded 3 mod(s) from cart",
            "balance_before": 0,
            "balance_after": 6,
            "level_before": "Bronze",
            "level_after": "Bronze",
            "metadata": {"item_count": 3},
            "created_at": NOW,
        }
        values.update(overrides)
        return tuple(values.values())

    def test_list_for_user_maps_rows(self, monkeypatch):
        conn = FakeConnection([("FROM point_transactions", [self._tx_row()])])
        _use_pool(monkeypatch, tx_module, FakePool(conn))
        user_id = uuid4()

        ledger = tx_module.PostgresPointTransactionRepository().list_for_user(
            user_id, limit=10, offset=5
        )

        tx = ledger[0]
        assert tx.type == TransactionType.EARN
        assert tx.source == TransactionSource.DOWNLOAD
        assert tx.metadata == {"item_count": 3}
        sql, params = conn.executed[0]
        assert "ORDER BY created_at DESC, id DESC" in sql
        assert params == (user_id, 10, 5)

    def test_list_for_user_with_zero_limit_skips_query(self, monkeypatch):
        pool = _use_pool(monkeypatch, tx_module, FakePool(error=AssertionError("unused")))

        assert tx_module.PostgresPointTransactionRepository().list_for_user(
            uuid4(), limit=0
        ) == []
        assert pool.conn.executed == []

    def test_unknown_type_is_schema_drift(self, monkeypatch):
        conn = FakeConnection([("FROM point_transactions", [self._tx_row(type="gift")])])
        _use_pool(monkeypatch, tx_module, FakePool(conn))

        with pytest.raises(DatabaseError, match="Invalid enum"):
            tx_module.PostgresPointTransactionRepository().list_for_user(uuid4())

    def test_count_for_user_filters_by_source(self, monkeypatch):
        conn = FakeConnection([("COUNT(*)", (2,))])
        _use_pool(monkeypatch, tx_module, FakePool(conn))
        user_id = uuid4()

        count = tx_module.PostgresPointTransactionRepository().count_for_user(
            user_id, source="download"
        )

        assert count == 2
        sql, params = conn.executed[0]
        assert sql.endswith("AND source = %s")
        assert params == (user_id, "download")

    def test_summary_for_user_splits_credits_and_debits(self, monkeypatch):
        conn = FakeConnection([("FROM point_transactions", (30, 12, 4))])
        _use_pool(monkeypatch, tx_module, FakePool(conn))

        summary = tx_module.PostgresPointTransactionRepository().summary_for_user(uuid4())

        assert (summary.total_earned, summary.total_spent) == (30, 12)
        assert summary.balance == 18
        assert summary.transaction_count == 4
        sql = conn.executed[0][0]
        assert "type IN ('earn', 'bonus')" in sql
        assert "type IN ('spend', 'penalty')" in sql
        assert "SUM(ABS(points))" in sql

    def test_system_stats_net_points(self, monkeypatch):
        conn = FakeConnection([("FROM point_transactions", (5, 100, 20, 3))])
        _use_pool(monkeypatch, tx_module, FakePool(conn))

        stats = tx_module.PostgresPointTransactionRepository().system_stats()

        assert stats.total_transactions == 5
        assert stats.unique_users == 3
        assert stats.net_points == 80
        assert "COUNT(DISTINCT user_id)" in conn.executed[0][0]

    def test_insert_transaction_stores_enum_values(self):
        from moostyle.domain.entities import PointTransaction

        tx = PointTransaction(
            user_id=uuid4(),
            points=-20,
            type=TransactionType.PENALTY,
            source=TransactionSource.ADMIN,
            description="Admin adjustment",
            balance_before=100,
            balance_after=80,
            level_before=MembershipLevel.GOLD,
            level_after=MembershipLevel.GOLD,
            metadata={"admin_id": "x"},
        )
        conn = FakeConnection()

        tx_module.insert_transaction(conn, tx)

        params = conn.executed[0][1]
        assert params[2:5] == (-20, "penalty", "admin")
        assert params[8:10] == ("Gold", "Gold")
        assert params[10].obj == {"admin_id": "x"}


# =============================================================================
# Users
# =============================================================================
class TestPostgresUserRepository:
    def _user_row(self, **overrides):
        values = {
            "id": uuid4(),
            "email": "cow@example.com",
            "username": "cow",
            "password_hash": "h",
            "role": "user",
            "is_active": True,
            "name": None,
            "points": 90,
            "membership_level": "Gold",
            "notification_settings": {"email_notifications": False},
            "last_download_at": None,
            "last_login_at": None,
            "ban_reason": None,
            "banned_at": None,
            "created_at": NOW,
            "updated_at": NOW,
        }
        values.update(overrides)
        return tuple(values.values())

    def test_list_users_searches_email_username_and_name(self, monkeypatch):
        conn = FakeConnection([("FROM users", [self._user_row()])])
        _use_pool(monkeypatch, user_module, FakePool(conn))

        users = user_module.list_users(search=" Cow ", limit=10, offset=20)

        assert users[0].membership_level == MembershipLevel.GOLD
        assert users[0].notification_settings == {"email_notifications": False}
        sql, params = conn.executed[0]
        assert "email ILIKE %s OR username ILIKE %s" in sql
        assert params == ("%Cow%", "%Cow%", "%Cow%", 10, 20)

    def test_count_users_without_search_has_no_filter(self, monkeypatch):
        conn = FakeConnection([("COUNT(*)", (7,))])
        _use_pool(monkeypatch, user_module, FakePool(conn))

        assert user_module.count_users() == 7
        sql, params = conn.executed[0]
        assert "WHERE" not in sql
        assert params == ()

    def test_list_users_with_zero_limit_skips_query(self, monkeypatch):
        pool = _use_pool(monkeypatch, user_module, FakePool())

        assert user_module.list_users(limit=0) == []
        assert pool.conn.executed == []

    def test_status_counts_maps_active_flag(self, monkeypatch):
        conn = FakeConnection([("GROUP BY is_active", [(True, 5), (False, 2)])])
        _use_pool(monkeypatch, user_module, FakePool(conn))

        assert user_module.status_counts() == {"active": 5, "banned": 2}

    def test_role_counts_include_missing_roles(self, monkeypatch):
        conn = FakeConnection([("GROUP BY role", [("user", 4), ("owner", 1)])])
        _use_pool(monkeypatch, user_module, FakePool(conn))

        assert user_module.role_counts() == {"user": 4, "admin": 0, "owner": 1}

    def test_membership_distribution_fills_every_tier(self, monkeypatch):
        conn = FakeConnection([("GROUP BY membership_level", [("Silver", 3)])])
        _use_pool(monkeypatch, user_module, FakePool(conn))

        distribution = user_module.membership_distribution()

        assert distribution["Silver"] == 3
        assert distribution["Bronze"] == 0
        assert set(distribution) == {level.value for level in MembershipLevel}

    def test_delete_user_removes_dependents_first(self, monkeypatch):
        user_id = uuid4()
        conn = FakeConnection([("DELETE FROM users", (user_id,))])
        _use_pool(monkeypatch, user_module, FakePool(conn))

        assert user_module.delete_user(user_id) is True
        tables = [sql.split()[2] for sql, _ in conn.executed]
        assert tables == ["cart_items", "carts", "point_transactions", "users"]
        assert conn.transactions == 1

    def test_delete_unknown_user_returns_false(self, monkeypatch):
        _use_pool(monkeypatch, user_module, FakePool())

        assert user_module.delete_user(uuid4()) is False

    def test_update_missing_user_raises(self, monkeypatch):
        from moostyle.infrastructure.repositories.postgres.user import row_to_user

        user = row_to_user(self._user_row())
        _use_pool(monkeypatch, user_module, FakePool())

        with pytest.raises(DatabaseError, match="not found"):
            user_module.update_user(user)

    def test_update_user_sends_level_and_ban_fields(self, monkeypatch):
        from dataclasses import replace

        from moostyle.infrastructure.repositories.postgres.user import row_to_user

        user = replace(
            row_to_user(self._user_row()),
            is_active=False,
            ban_reason="spam",
            banned_at=NOW,
        )
        conn = FakeConnection(
            [("UPDATE users", self._user_row(is_active=False, ban_reason="spam", banned_at=NOW))]
        )
        _use_pool(monkeypatch, user_module, FakePool(conn))

        stored = user_module.update_user(user)

        assert stored.ban_reason == "spam"
        params = conn.executed[0][1]
        assert params[7] == "Gold"
        assert params[9:12] == (None, "spam", NOW)
        assert params[-1] == user.id


# =============================================================================
# Audit events
# =============================================================================
class TestPostgresAuditEventRepository:
    def test_record_event_serializes_metadata(self):
        conn = FakeConnection()
        event = AuditEvent(
            id=uuid4(), actor="admin:abc", action="admin.user.ban", metadata={"reason": "spam"}
        )

        PostgresAuditEventRepository(pool=FakePool(conn)).record_event(event)

        params = conn.executed[0][1]
        assert params[:3] == (event.id, "admin:abc", "admin.user.ban")
        assert params[4].obj == {"reason": "spam"}

    def test_list_events_filters_by_actor_suffix_and_prefix(self):
        event_id = uuid4()
        conn = FakeConnection(
            [("FROM audit_events", [(event_id, "admin:abc", "admin.user.ban", None, None, NOW)])]
        )

        events = PostgresAuditEventRepository(pool=FakePool(conn)).list_events(
            actor_id="abc", action_prefix="admin.", limit=5
        )

        assert events[0].id == event_id
        assert events[0].metadata == {}
        sql, params = conn.executed[0]
        assert "actor LIKE %s AND action LIKE %s" in sql
        assert params == ("%:abc", "admin.%", 5, 0)

    def test_record_event_failure_is_wrapped(self):
        repo = PostgresAuditEventRepository(pool=FakePool(error=OSError("down")))
        event = AuditEvent(id=uuid4(), actor="user:abc", action="auth.login")

        with pytest.raises(DatabaseError, match="Failed to record audit event"):
            repo.record_event(event)
