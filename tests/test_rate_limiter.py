import threading
from datetime import timedelta

import pytest

from quizdrill.services.rate_limiter import (
    InMemoryRateLimitStore,
    RateLimitResult,
    SlidingWindowLimiter,
    register_limiter,
    sign_in_limiter,
)

WINDOW = timedelta(minutes=15)


class FakeClock:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def _limiter(clock, max_attempts=10):
    return SlidingWindowLimiter(max_attempts, WINDOW, clock=clock)


class TestWindow:
    def test_allows_up_to_max_then_blocks(self, clock):
        limiter = _limiter(clock)
        results = [limiter.check("1.2.3.4") for _ in range(10)]
        assert all(r.allowed for r in results)

        blocked = limiter.check("1.2.3.4")
        assert not blocked.allowed
        assert blocked.retry_after_seconds == 900

    def test_retry_after_counts_down(self, clock):
        limiter = _limiter(clock, max_attempts=5)
        for _ in range(5):
            limiter.check("k")

        clock.advance(100)
        assert limiter.check("k").retry_after_seconds == 800

        clock.advance(0.5)
        # ceil of 799.5
        assert limiter.check("k").retry_after_seconds == 800

    def test_blocked_attempts_do_not_extend_window(self, clock):
        limiter = _limiter(clock, max_attempts=2)
        limiter.check("k")
        limiter.check("k")
        for _ in range(20):
            clock.advance(10)
            limiter.check("k")
        assert limiter.check("k").retry_after_seconds == 700

    def test_window_resets_after_expiry(self, clock):
        limiter = _limiter(clock, max_attempts=3)
        for _ in range(4):
            limiter.check("k")
        assert not limiter.check("k").allowed

        clock.advance(900)
        assert limiter.check("k").allowed
        assert limiter.check("k").allowed
        assert limiter.check("k").allowed
        assert not limiter.check("k").allowed

    def test_window_opens_on_first_attempt(self, clock):
        limiter = _limiter(clock, max_attempts=2)
        limiter.check("k")
        clock.advance(600)
        limiter.check("k")
        clock.advance(299)
        assert not limiter.check("k").allowed
        clock.advance(1)
        assert limiter.check("k").allowed

    def test_keys_are_independent(self, clock):
        limiter = _limiter(clock, max_attempts=1)
        assert limiter.check("a").allowed
        assert not limiter.check("a").allowed
        assert limiter.check("b").allowed

    def test_single_attempt_limit(self, clock):
        limiter = _limiter(clock, max_attempts=1)
        assert limiter.check("k").allowed
        assert limiter.check("k").retry_after_seconds == 900

    def test_rejects_nonpositive_max(self):
        with pytest.raises(ValueError):
            SlidingWindowLimiter(0, WINDOW)


class TestStore:
    def test_expired_entries_are_pruned_on_check(self, clock):
        store = InMemoryRateLimitStore()
        limiter = SlidingWindowLimiter(5, WINDOW, store=store, clock=clock)
        limiter.check("old")
        clock.advance(901)
        limiter.check("fresh")
        assert "old" not in store
        assert "fresh" in store
        assert len(store) == 1

    def test_prune_returns_dropped_count(self, clock):
        store = InMemoryRateLimitStore()
        limiter = SlidingWindowLimiter(5, WINDOW, store=store, clock=clock)
        limiter.check("a")
        limiter.check("b")
        assert store.prune(clock() + 900) == 2
        assert len(store) == 0

    def test_reset_clears_state(self, clock):
        limiter = _limiter(clock, max_attempts=1)
        limiter.check("k")
        limiter.reset()
        assert limiter.check("k").allowed

    def test_concurrent_checks_never_overshoot(self, clock):
        limiter = _limiter(clock, max_attempts=10)
        allowed = []
        lock = threading.Lock()

        def hit():
            result = limiter.check("shared")
            with lock:
                allowed.append(result.allowed)

        threads = [threading.Thread(target=hit) for _ in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert allowed.count(True) == 10


class TestInstances:
    def test_configured_limits(self):
        assert sign_in_limiter.max_attempts == 10
        assert register_limiter.max_attempts == 5
        assert sign_in_limiter.window_seconds == 900
        assert register_limiter.window_seconds == 900

    def test_instances_do_not_share_state(self):
        for _ in range(5):
            register_limiter.check("9.9.9.9")
        assert not register_limiter.check("9.9.9.9").allowed
        assert sign_in_limiter.check("9.9.9.9").allowed

    def test_result_to_dict(self):
        assert RateLimitResult(allowed=True).to_dict() == {"allowed": True}
        assert RateLimitResult(False, 42).to_dict() == {"allowed": False, "retry_after_seconds": 42}


def test_five_attempt_window(clock):
    limiter = SlidingWindowLimiter(5, WINDOW, clock=clock)
    for _ in range(5):
        assert limiter.check("203.0.113.7").allowed

    sixth = limiter.check("203.0.113.7")
    assert not sixth.allowed
    assert sixth.retry_after_seconds == 900
