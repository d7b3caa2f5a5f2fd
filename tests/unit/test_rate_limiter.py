"""Unit tests for fixed-window rate limiting."""

import pytest

from paypal_orchestrator.infrastructure.rate_limiter import (
    WEBHOOK_LIMIT,
    FixedWindowRateLimiter,
    RateLimitConfig,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_700_000_000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestFixedWindowRateLimiter:
    """Test suite for per-client admission."""

    def test_allows_up_to_limit(self, clock):
        limiter = FixedWindowRateLimiter(WEBHOOK_LIMIT, clock=clock)

        decisions = [limiter.hit("203.0.113.7") for _ in range(101)]

        assert all(d.allowed for d in decisions[:100])
        assert decisions[99].remaining == 0
        denied = decisions[100]
        assert not denied.allowed
        assert denied.retry_after_seconds == 60
        assert denied.headers()["Retry-After"] == "60"
        assert denied.headers()["X-RateLimit-Limit"] == "100"

    def test_allowed_headers_have_no_retry_after(self, clock):
        limiter = FixedWindowRateLimiter(WEBHOOK_LIMIT, clock=clock)

        headers = limiter.hit("203.0.113.7").headers()

        assert headers["X-RateLimit-Remaining"] == "99"
        assert headers["X-RateLimit-Reset"] == str(int(clock.now) + 60)
        assert "Retry-After" not in headers

    def test_window_resets(self, clock):
        limiter = FixedWindowRateLimiter(RateLimitConfig("test", max_requests=2, window_seconds=10), clock=clock)
        for _ in range(3):
            limiter.hit("client")

        clock.now += 10

        assert limiter.hit("client").allowed

    def test_retry_after_counts_down(self, clock):
        limiter = FixedWindowRateLimiter(RateLimitConfig("test", max_requests=1, window_seconds=10), clock=clock)
        limiter.hit("client")

        clock.now += 7.5

        assert limiter.hit("client").retry_after_seconds == 3

    def test_clients_are_independent(self, clock):
        limiter = FixedWindowRateLimiter(RateLimitConfig("test", max_requests=1, window_seconds=10), clock=clock)

        assert limiter.hit("a").allowed
        assert limiter.hit("b").allowed
        assert not limiter.hit("a").allowed

    def test_sweep_evicts_expired_windows(self, clock):
        limiter = FixedWindowRateLimiter(RateLimitConfig("test", max_requests=5, window_seconds=10), clock=clock)
        limiter.hit("a")
        clock.now += 5
        limiter.hit("b")
        clock.now += 5

        assert limiter.sweep() == 1
        assert len(limiter) == 1
