"""Tests for the sliding-window rate limiter."""

import asyncio

import pytest

from common.rate_limiter import RateLimiter


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestTryAcquire:
    """Tests for non-blocking admission."""

    def test_admits_up_to_limit(self, clock):
        """Test that exactly `limit` requests fit in one window."""
        limiter = RateLimiter(limit=3, window_ms=1000, clock=clock)
        assert [limiter.try_acquire() for _ in range(4)] == [True, True, True, False]
        assert limiter.in_window == 3

    def test_window_slides(self, clock):
        """Test that requests older than the window stop counting."""
        limiter = RateLimiter(limit=2, window_ms=1000, clock=clock)
        limiter.try_acquire()
        clock.advance(0.5)
        limiter.try_acquire()
        assert not limiter.try_acquire()

        clock.advance(0.5)  # First request is now exactly one window old
        assert limiter.try_acquire()
        assert limiter.in_window == 2

    def test_never_more_than_limit_in_any_window(self, clock):
        """Test the admission invariant over many attempts."""
        limiter = RateLimiter(limit=5, window_ms=1000, clock=clock)
        admitted = []
        for _ in range(100):
            if limiter.try_acquire():
                admitted.append(clock())
            clock.advance(0.05)

        for t in admitted:
            in_window = [a for a in admitted if t <= a < t + 1.0]
            assert len(in_window) <= 5

    def test_reset(self, clock):
        """Test that reset clears the window."""
        limiter = RateLimiter(limit=1, window_ms=1000, clock=clock)
        limiter.try_acquire()
        limiter.reset()
        assert limiter.try_acquire()

    @pytest.mark.parametrize("kwargs", [{"limit": 0}, {"window_ms": 0}])
    def test_rejects_invalid_configuration(self, kwargs):
        """Test that nonsensical limits are refused."""
        with pytest.raises(ValueError):
            RateLimiter(**kwargs)


class TestAdmit:
    """Tests for the async polling path."""

    def test_admits_immediately_when_room(self, clock):
        """Test that admit doesn't sleep while the window has room."""
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)

        limiter = RateLimiter(limit=2, window_ms=1000, clock=clock, sleep=fake_sleep)
        asyncio.run(limiter.admit())
        assert sleeps == []
        assert limiter.in_window == 1

    def test_polls_until_slot_frees(self, clock):
        """Test that a full window is re-checked every poll interval."""
        sleeps = []

        async def fake_sleep(seconds):
            sleeps.append(seconds)
            clock.advance(seconds)

        limiter = RateLimiter(
            limit=1, window_ms=3000, poll_interval=1.0, clock=clock, sleep=fake_sleep
        )
        limiter.try_acquire()

        asyncio.run(limiter.admit())

        assert sleeps == [1.0, 1.0, 1.0]
        assert limiter.in_window == 1


class TestWaitIfNeeded:
    """Tests for the blocking path."""

    def test_sleeps_until_oldest_request_expires(self, clock):
        """Test that the blocking wait targets the oldest request's expiry."""
        sleeps = []

        def fake_sleep(seconds):
            sleeps.append(seconds)
            clock.advance(seconds)

        limiter = RateLimiter(limit=1, window_ms=2000, clock=clock, blocking_sleep=fake_sleep)
        limiter.wait_if_needed()
        clock.advance(0.5)
        limiter.wait_if_needed()

        assert sleeps == [pytest.approx(1.6)]
        assert limiter.in_window == 1
