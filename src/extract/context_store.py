"""Cross-episode context preserved between extraction calls."""

import time
from collections import OrderedDict
from collections.abc import Callable

from common.env import env


class ContextStore:
    """Keyed store of ``contextPreserved`` summaries with TTL and size eviction.

    Entries are keyed by episode id. Writing an existing key overwrites it and
    marks it most recent. When the store is full the oldest entry is evicted.

    Example:
        >>> store = ContextStore(ttl_seconds=3600)
        >>> store.set("ep-1", "Episode covers the early Apple years")
        >>> store.latest(exclude="ep-2")
        'Episode covers the early Apple years'
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        max_entries: int = 500,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize context store.

        Args:
            ttl_seconds: Seconds an entry stays usable (default: CONTEXT_TTL_SECONDS)
            max_entries: Maximum number of entries kept
            clock: Monotonic clock returning seconds
        """
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else env.context_ttl_seconds()
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, str]] = OrderedDict()

    def _expired(self, stored_at: float, now: float) -> bool:
        return now - stored_at >= self.ttl_seconds

    def _purge(self) -> None:
        now = self._clock()
        for key in [k for k, (stored_at, _) in self._entries.items() if self._expired(stored_at, now)]:
            del self._entries[key]

    def set(self, episode_id: str, context: str) -> None:
        """Store the preserved context for an episode (blank context is ignored)."""
        if not context or not context.strip():
            return
        self._entries.pop(episode_id, None)
        self._entries[episode_id] = (self._clock(), context.strip())
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def get(self, episode_id: str) -> str | None:
        """Get the preserved context for an episode, if present and not expired."""
        self._purge()
        entry = self._entries.get(episode_id)
        return entry[1] if entry else None

    def latest(self, exclude: str | None = None) -> str | None:
        """Most recently stored context belonging to a different episode."""
        self._purge()
        for key in reversed(self._entries):
            if key != exclude:
                return self._entries[key][1]
        return None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        self._purge()
        return len(self._entries)

    def __contains__(self, episode_id: object) -> bool:
        return isinstance(episode_id, str) and self.get(episode_id) is not None
