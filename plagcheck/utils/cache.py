"""
Time-bounded, thread-safe memo for external query results.

Entries expire ``ttl`` seconds after insertion and are evicted lazily on the
next lookup; there is no background sweep. The lock makes the cache safe to
share between coroutines on the event loop and blocking clients running in
worker threads. Concurrent writes to the same key are last-writer-wins.
"""
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from plagcheck.config import CACHE_TTL


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResultCache:
    def __init__(self, ttl: float = CACHE_TTL, clock: Callable[[], float] = time.monotonic):
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.ttl = ttl
        self._clock = clock
        self._store: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._store[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self.ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        with self._lock:
            self._store[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        # Counts live entries only; expired ones are dropped on the way.
        with self._lock:
            now = self._clock()
            for key in [k for k, e in self._store.items() if e.is_expired(now)]:
                del self._store[key]
            return len(self._store)
