"""Short-lived in-process cache for quote batches."""

import time
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from ..config.logging import get_logger

logger = get_logger(__name__)


def request_signature(symbols: Iterable[str]) -> Tuple[str, ...]:
    """
    Cache key for a quote request.

    Usage:
        request_signature(["msft", "AAPL"]) -> ("AAPL", "MSFT")
    """
    return tuple(sorted({s.strip().upper() for s in symbols if s and s.strip()}))


class TTLCache:
    """Read-through cache whose entries expire after ``ttl_seconds``."""

    def __init__(
        self,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 256,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._max_entries = max_entries
        self._entries: Dict[Any, Tuple[float, Any]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: Any) -> Optional[Any]:
        """Get value from cache, or None when missing or stale."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        stored_at, value = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        logger.debug("Cache hit", key=key)
        return value

    def set(self, key: Any, value: Any) -> None:
        """Store value under key."""
        if len(self._entries) >= self._max_entries and key not in self._entries:
            self._evict_oldest()
        self._entries[key] = (self._clock(), value)

    def invalidate(self, key: Any = None) -> None:
        """Drop one key, or everything when key is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def _evict_oldest(self) -> None:
        oldest = min(self._entries, key=lambda k: self._entries[k][0])
        del self._entries[oldest]

    def __len__(self) -> int:
        return len(self._entries)
