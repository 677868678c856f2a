"""Unit tests for the sliding-window RateLimiter."""

import threading

import pytest

from services.rate_limiter import (
    GLOBAL_PASSWORD_KEY,
    MINUTE_MS,
    RateLimitPolicy,
    RateLimiter,
    RateLimitResult,
    build_rate_limiters,
    normalize_email,
)


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock)


class TestCheckLimit:
    def test_allows_up_to_max_attempts(self, limiter):
        results = [limiter.check_limit("k", 3, 1000) for _ in range(3)]
        assert all(r.allowed for r in results)
        assert all(r.retry_after_ms is None for r in results)

    def test_rejects_attempt_over_limit(self, limiter, clock):
        for _ in range(3):
            limiter.check_limit("k", 3, 1000)
        clock.advance(200)

        result = limiter.check_limit("k", 3, 1000)

        assert result == RateLimitResult(allowed=False, retry_after_ms=800)

    def test_retry_after_is_positive(self, limiter, clock):
        limiter.check_limit("k", 1, 1000)
        clock.advance(999)
        result = limiter.check_limit("k", 1, 1000)
        assert not result.allowed
        assert result.retry_after_ms == 1

    def test_rejected_attempts_are_not_recorded(self, limiter, clock):
        limiter.check_limit("k", 1, 1000)
        for _ in range(5):
            clock.advance(100)
            assert not limiter.check_limit("k", 1, 1000).allowed

        # The lockout still ends one window after the single admitted attempt
        clock.advance(500)
        assert limiter.check_limit("k", 1, 1000).allowed

    def test_timestamp_exactly_at_window_edge_is_pruned(self, limiter, clock):
        limiter.check_limit("k", 1, 1000)
        clock.advance(1000)
        assert limiter.check_limit("k", 1, 1000).allowed

    def test_window_slides(self, limiter, clock):
        limiter.check_limit("k", 2, 1000)  # t=0
        clock.advance(600)
        limiter.check_limit("k", 2, 1000)  # t=600
        clock.advance(300)
        assert not limiter.check_limit("k", 2, 1000).allowed  # t=900

        clock.advance(100)  # t=1000, first attempt expires
        assert limiter.check_limit("k", 2, 1000).allowed
        assert not limiter.check_limit("k", 2, 1000).allowed

    def test_keys_are_independent(self, limiter):
        limiter.check_limit("a", 1, 1000)
        assert not limiter.check_limit("a", 1, 1000).allowed
        assert limiter.check_limit("b", 1, 1000).allowed

    def test_check_uses_policy_limits(self, limiter):
        policy = RateLimitPolicy(max_attempts=2, window_ms=1000)
        assert limiter.check("k", policy).allowed
        assert limiter.check("k", policy).allowed
        assert not limiter.check("k", policy).allowed


class TestResetAndSize:
    def test_size_counts_tracked_keys(self, limiter):
        limiter.check_limit("a", 5, 1000)
        limiter.check_limit("b", 5, 1000)
        assert limiter.size == 2

    def test_reset_single_key(self, limiter):
        limiter.check_limit("a", 1, 1000)
        limiter.check_limit("b", 1, 1000)
        limiter.reset("a")
        assert limiter.check_limit("a", 1, 1000).allowed
        assert not limiter.check_limit("b", 1, 1000).allowed

    def test_reset_all(self, limiter):
        limiter.check_limit("a", 1, 1000)
        limiter.reset()
        assert limiter.size == 0
        assert limiter.check_limit("a", 1, 1000).allowed


class TestConcurrency:
    def test_concurrent_checks_never_over_admit(self):
        limiter = RateLimiter()
        admitted = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                if limiter.check_limit("shared", 25, 60_000).allowed:
                    with lock:
                        admitted.append(1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(admitted) == 25


class TestPolicies:
    def test_normalize_email(self):
        assert normalize_email("  Alice@Example.COM ") == "alice@example.com"

    def test_sign_in_is_five_per_fifteen_minutes_per_email(self, clock):
        limiters = build_rate_limiters(clock)
        for _ in range(5):
            assert limiters.check_sign_in("user@example.com").allowed
        # Same address with different casing shares the bucket
        result = limiters.check_sign_in("USER@example.com ")
        assert not result.allowed
        assert result.retry_after_ms == 15 * MINUTE_MS
        assert limiters.check_sign_in("other@example.com").allowed

    def test_sign_up_is_ten_per_hour(self, clock):
        limiters = build_rate_limiters(clock)
        for _ in range(10):
            assert limiters.check_sign_up("new@example.com").allowed
        assert not limiters.check_sign_up("new@example.com").allowed
        clock.advance(60 * MINUTE_MS)
        assert limiters.check_sign_up("new@example.com").allowed

    def test_global_password_uses_one_shared_key(self, clock):
        limiters = build_rate_limiters(clock)
        for _ in range(10):
            assert limiters.check_global_password().allowed
        assert not limiters.check_global_password().allowed
        assert limiters.global_password.size == 1
        limiters.global_password.reset(GLOBAL_PASSWORD_KEY)
        assert limiters.check_global_password().allowed

    def test_sync_trigger_is_per_client(self, clock):
        limiters = build_rate_limiters(clock)
        for _ in range(10):
            limiters.check_sync_trigger("10.0.0.1")
        assert not limiters.check_sync_trigger("10.0.0.1").allowed
        assert limiters.check_sync_trigger("10.0.0.2").allowed

    def test_retry_after_seconds_rounds_up(self):
        assert RateLimitResult(False, 1).retry_after_seconds == 1
        assert RateLimitResult(False, 2000).retry_after_seconds == 2
        assert RateLimitResult(False, 2001).retry_after_seconds == 3
        assert RateLimitResult(True).retry_after_seconds == 0
