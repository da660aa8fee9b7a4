"""In-process response cache with per-entry expiry."""

import time
from collections.abc import Callable
from typing import Any


class TTLCache:
    """Minimal TTL cache for upstream responses.

    A plain key -> (value, expiry) map. Expired entries are evicted when
    they are read, and every write purges whatever else has expired, so
    keys that are never read again do not accumulate.
    """

    def __init__(
        self,
        ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._store: dict[str, tuple[Any, float]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expiry = entry
        if self._clock() >= expiry:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        now = self._clock()
        self.purge_expired(now)
        lifetime = self._ttl if ttl is None else ttl
        self._store[key] = (value, now + lifetime)

    def purge_expired(self, now: float | None = None) -> int:
        """Drop every expired entry. Returns how many were dropped."""
        now = self._clock() if now is None else now
        expired = [key for key, (_, expiry) in self._store.items() if now >= expiry]
        for key in expired:
            del self._store[key]
        return len(expired)

    def evict(self, key: str) -> None:
        self._store.pop(key, None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
