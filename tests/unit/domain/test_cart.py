"""
Name: Cart Entity Tests

Responsibilities:
  - Merge on add, remove, update (<= 0 removes), clear
  - Derived totals (items, size, price)
  - Ledger summary arithmetic
"""

from uuid import uuid4

import pytest

from moostyle.domain.entities import (
    Cart,
    PointsSummary,
    PointTransaction,
    ProductSnapshot,
    TransactionSource,
    TransactionType,
)
from moostyle.domain.membership import MembershipLevel

pytestmark = pytest.mark.unit


def _product(product_id: str = "mod-1", *, size: int = 100, price: float = 1.5):
    return ProductSnapshot(
        product_id=product_id,
        name=f"Mod {product_id}",
        download_url=f"https://cdn.example.com/{product_id}.zip",
        file_size=size,
        price=price,
    )


def test_add_same_product_merges_quantity():
    cart = Cart(user_id=uuid4())
    cart.add_item(_product(), 1)
    cart.add_item(_product(), 2)

    assert len(cart.items) == 1
    assert cart.items[0].quantity == 3
    assert cart.total_items == 3


def test_add_rejects_non_positive_quantity():
    cart = Cart(user_id=uuid4())
    with pytest.raises(ValueError):
        cart.add_item(_product(), 0)


def test_totals_are_derived_from_items():
    cart = Cart(user_id=uuid4())
    cart.add_item(_product("a", size=100, price=1.25), 2)
    cart.add_item(_product("b", size=50, price=0.1), 3)

    assert cart.total_items == 5
    assert cart.total_size == 350
    assert cart.total_price == pytest.approx(2.8)


def test_update_to_zero_removes_line():
    cart = Cart(user_id=uuid4())
    cart.add_item(_product("a"))
    cart.add_item(_product("b"))

    assert cart.update_item_quantity("a", 0) is True
    assert [i.product_id for i in cart.items] == ["b"]


def test_update_missing_product_returns_false():
    cart = Cart(user_id=uuid4())
    assert cart.update_item_quantity("missing", 2) is False


def test_remove_and_clear():
    cart = Cart(user_id=uuid4())
    cart.add_item(_product("a"))
    cart.add_item(_product("b"))

    assert cart.remove_item("a") is True
    assert cart.remove_item("a") is False
    cart.clear()
    assert cart.is_empty
    assert cart.total_items == 0


def test_replace_items_skips_zero_quantities_and_merges():
    cart = Cart(user_id=uuid4())
    cart.add_item(_product("old"))

    cart.replace_items([(_product("a"), 1), (_product("b"), 0), (_product("a"), 2)])

    assert [(i.product_id, i.quantity) for i in cart.items] == [("a", 3)]


def test_snapshot_dict_roundtrip_keeps_tags():
    snapshot = ProductSnapshot(product_id="x", name="X", tags=("hair", "cc"))
    assert ProductSnapshot.from_dict(snapshot.to_dict()) == snapshot


def _tx(points: int, tx_type: TransactionType) -> PointTransaction:
    return PointTransaction(
        user_id=uuid4(),
        points=points,
        type=tx_type,
        source=TransactionSource.ADMIN,
        description="test",
        balance_before=0,
        balance_after=max(points, 0),
        level_before=MembershipLevel.BRONZE,
        level_after=MembershipLevel.BRONZE,
    )


def test_points_summary_uses_absolute_values():
    summary = PointsSummary.from_transactions(
        [
            _tx(10, TransactionType.EARN),
            _tx(5, TransactionType.BONUS),
            _tx(-4, TransactionType.PENALTY),
        ]
    )

    assert summary.total_earned == 15
    assert summary.total_spent == 4
    assert summary.balance == 11
    assert summary.transaction_count == 3
