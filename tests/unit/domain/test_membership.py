"""
Name: Membership Tier Tests

Responsibilities:
  - Validate tier boundaries (Bronze/Silver/Gold/Diamond)
  - Validate points_to_next_level
  - Reject negative totals
"""

import pytest

from moostyle.domain.membership import (
    MembershipLevel,
    membership_for_points,
    points_to_next_level,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "points,expected",
    [
        (0, MembershipLevel.BRONZE),
        (29, MembershipLevel.BRONZE),
        (30, MembershipLevel.SILVER),
        (79, MembershipLevel.SILVER),
        (80, MembershipLevel.GOLD),
        (199, MembershipLevel.GOLD),
        (200, MembershipLevel.DIAMOND),
        (10_000, MembershipLevel.DIAMOND),
    ],
)
def test_membership_boundaries(points, expected):
    assert membership_for_points(points) == expected


def test_negative_points_rejected():
    with pytest.raises(ValueError):
        membership_for_points(-1)


def test_level_values_are_display_names():
    assert [level.value for level in MembershipLevel] == [
        "Bronze",
        "Silver",
        "Gold",
        "Diamond",
    ]


@pytest.mark.parametrize(
    "points,missing",
    [(0, 30), (10, 20), (30, 50), (150, 50), (199, 1)],
)
def test_points_to_next_level(points, missing):
    assert points_to_next_level(points) == missing


def test_diamond_has_no_next_level():
    assert points_to_next_level(200) is None
    assert points_to_next_level(999) is None
