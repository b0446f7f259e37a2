"""Rate limiting utilities for outbound API calls."""

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable


class RateLimiter:
    """Sliding window admission control for API clients.

    Keeps the timestamps of admitted requests for the last ``window_ms``
    milliseconds. A request is admitted while fewer than ``limit`` requests
    were recorded inside the window.

    The async path (``admit``) polls every ``poll_interval`` seconds until a
    slot frees up, which is what the LLM gateway uses. The blocking path
    (``wait_if_needed``) sleeps until the oldest request leaves the window and
    is used by the synchronous Google Books client.

    Example:
        >>> limiter = RateLimiter(limit=4000, window_ms=60_000)
        >>> await limiter.admit()  # Suspends while the window is full
    """

    def __init__(
        self,
        limit: int = 4000,
        window_ms: int = 60_000,
        poll_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        blocking_sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize rate limiter.

        Args:
            limit: Maximum number of requests admitted per window
            window_ms: Length of the sliding window in milliseconds
            poll_interval: Seconds between re-checks while the window is full
            clock: Monotonic clock returning seconds
            sleep: Async sleep used by ``admit``
            blocking_sleep: Blocking sleep used by ``wait_if_needed``
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")

        self.limit = limit
        self.window_ms = window_ms
        self.poll_interval = poll_interval
        self.request_times: deque[float] = deque()
        self._clock = clock
        self._sleep = sleep
        self._blocking_sleep = blocking_sleep

    @property
    def window_seconds(self) -> float:
        return self.window_ms / 1000

    def _discard_expired(self, now: float) -> None:
        while self.request_times and now - self.request_times[0] >= self.window_seconds:
            self.request_times.popleft()

    def try_acquire(self) -> bool:
        """Record a request if the window has room.

        Returns:
            True if the request was admitted, False if the window is full
        """
        now = self._clock()
        self._discard_expired(now)

        if len(self.request_times) >= self.limit:
            return False

        self.request_times.append(now)
        return True

    async def admit(self) -> None:
        """Suspend until a request is permitted, then record it.

        Callers that find the window full re-check every ``poll_interval``
        seconds; there is no fairness guarantee between waiting callers.
        """
        while not self.try_acquire():
            await self._sleep(self.poll_interval)

    def wait_if_needed(self) -> None:
        """Block until a request is permitted, then record it."""
        while not self.try_acquire():
            now = self._clock()
            sleep_time = self.window_seconds - (now - self.request_times[0]) + 0.1
            self._blocking_sleep(max(sleep_time, 0.0))

    @property
    def in_window(self) -> int:
        """Number of requests currently counted against the window."""
        self._discard_expired(self._clock())
        return len(self.request_times)

    def reset(self) -> None:
        """Clear all tracked requests (useful for testing)."""
        self.request_times.clear()
