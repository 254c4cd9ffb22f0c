"""
Name: Rate Limiter Tests

Responsibilities:
  - Test fixed window counting and reset
  - Test retry-after calculation
  - Test key eviction
  - Test policy resolution by path

Notes:
  - Unit tests (no external dependencies)
  - Uses an injected clock instead of sleeping
"""

import pytest


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.mark.unit
class TestFixedWindowLimiter:
    """Test FixedWindowLimiter class."""

    def test_new_key_has_full_limit(self):
        from moostyle.crosscutting.rate_limit import FixedWindowLimiter

        limiter = FixedWindowLimiter(limit=3, window_seconds=300)
        assert limiter.get_remaining("ip") == 3

    def test_hits_decrement_remaining(self):
        from moostyle.crosscutting.rate_limit import FixedWindowLimiter

        limiter = FixedWindowLimiter(limit=3, window_seconds=300)

        first = limiter.hit("ip")
        second = limiter.hit("ip")

        assert (first.allowed, first.remaining) == (True, 2)
        assert (second.allowed, second.remaining) == (True, 1)
        assert limiter.get_remaining("ip") == 1

    def test_blocks_after_limit_with_retry_after(self):
        from moostyle.crosscutting.rate_limit import FixedWindowLimiter

        clock = FakeClock()
        limiter = FixedWindowLimiter(limit=3, window_seconds=300, clock=clock)

        for _ in range(3):
            assert limiter.hit("ip").allowed

        clock.now += 100
        decision = limiter.hit("ip")

        assert decision.allowed is False
        assert decision.remaining == 0
        assert decision.retry_after == pytest.approx(200)

    def test_window_resets_after_elapsed(self):
        from moostyle.crosscutting.rate_limit import FixedWindowLimiter

        clock = FakeClock()
        limiter = FixedWindowLimiter(limit=1, window_seconds=60, clock=clock)

        limiter.hit("ip")
        assert limiter.hit("ip").allowed is False

        clock.now += 60
        assert limiter.hit("ip").allowed is True

    def test_keys_are_independent(self):
        from moostyle.crosscutting.rate_limit import FixedWindowLimiter

        limiter = FixedWindowLimiter(limit=1, window_seconds=60)

        assert limiter.hit("a").allowed
        assert limiter.hit("b").allowed
        assert not limiter.hit("a").allowed

    def test_oldest_key_is_evicted(self):
        from moostyle.crosscutting.rate_limit import FixedWindowLimiter

        limiter = FixedWindowLimiter(limit=1, window_seconds=60, max_keys=2)

        limiter.hit("a")
        limiter.hit("b")
        limiter.hit("c")

        # "a" was evicted, so it starts a fresh window.
        assert limiter.hit("a").allowed

    @pytest.mark.parametrize("limit,window", [(0, 60), (1, 0)])
    def test_invalid_configuration(self, limit, window):
        from moostyle.crosscutting.rate_limit import FixedWindowLimiter

        with pytest.raises(ValueError):
            FixedWindowLimiter(limit=limit, window_seconds=window)


@pytest.mark.unit
class TestPolicies:
    """Policy resolution and settings-driven limits."""

    @pytest.mark.parametrize(
        "method,path,expected",
        [
            ("POST", "/api/cart/download", "download"),
            ("GET", "/api/cart/download", "api"),
            ("POST", "/api/auth/login", "auth"),
            ("POST", "/api/auth/register/", "auth"),
            ("GET", "/api/cart", "api"),
            ("GET", "/api/health/database", None),
            ("GET", "/healthz", None),
            ("GET", "/metrics", None),
        ],
    )
    def test_resolve_policy(self, method, path, expected):
        from moostyle.crosscutting.rate_limit import resolve_policy

        assert resolve_policy(method, path) == expected

    def test_policies_follow_settings(self, monkeypatch):
        from moostyle.crosscutting.config import get_settings
        from moostyle.crosscutting.rate_limit import (
            get_policies,
            get_rate_limiter,
            reset_rate_limiter,
        )

        monkeypatch.setenv("DOWNLOAD_RATE_LIMIT", "7")
        get_settings.cache_clear()
        reset_rate_limiter()

        policies = get_policies()

        assert policies["download"].limit == 7
        assert policies["auth"].limit == 5
        assert get_rate_limiter("download") is get_rate_limiter("download")
        assert get_rate_limiter("download").limit == 7
