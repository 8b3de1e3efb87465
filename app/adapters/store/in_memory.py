"""In-process TTL store with LRU eviction.

Used when ``CACHE_BACKEND=memory`` (local development without Redis) and in
tests. Values are kept JSON-serialized so this backend accepts and returns
exactly what the Redis backend does.

Notes:
- Per-process only: running multiple workers multiplies rate limits and
  splits the cache.
- Counters created by ``increment`` are never LRU-evicted, so a burst of
  distinct cached locations cannot reset callers' rate limit budgets. They
  still expire with their window and do not count towards ``max_entries``.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import json
import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from app.adapters.store.base import MISS, AbstractKeyValueStore, CacheLookup, WindowCounter

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    payload: str
    expires_at: float | None
    counter: bool = False


class InMemoryKeyValueStore(AbstractKeyValueStore):
    """Thread-safe, in-memory key/value store with TTL and LRU eviction.

    Attributes:
        max_entries: Maximum number of stored keys (None for unlimited).
    """

    backend_name = "memory"

    def __init__(
        self,
        *,
        max_entries: int | None = 1024,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, _Entry] = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryKeyValueStore(max_entries={self._max_entries}, "
            f"size={len(self._store)}, hits={self._hits}, misses={self._misses}, "
            f"evictions={self._evictions})"
        )

    async def get(self, key: str) -> CacheLookup:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                self._misses += 1
                logger.debug("cache.miss", extra={"cache_key": key, "backend": self.backend_name})
                return MISS
            self._store.move_to_end(key)  # mark as recently used
            payload = entry.payload

        try:
            value = json.loads(payload)
        except ValueError:
            logger.warning(
                "cache.degraded",
                extra={"operation": "get", "cache_key": key, "reason": "undecodable_payload"},
            )
            return MISS

        with self._lock:
            self._hits += 1
        logger.debug("cache.hit", extra={"cache_key": key, "backend": self.backend_name})
        return CacheLookup(value=value, found=True)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            logger.warning(
                "cache.degraded",
                extra={"operation": "set", "cache_key": key, "error": str(exc)},
            )
            return False

        with self._lock:
            self._evict_expired_locked()
            self._store[key] = _Entry(payload=payload, expires_at=self._clock() + ttl_seconds)
            self._store.move_to_end(key)
            self._evict_if_over_capacity_locked()

            logger.debug(
                "cache.set",
                extra={"cache_key": key, "size": len(self._store), "ttl_s": ttl_seconds},
            )
        return True

    async def delete(self, key: str) -> bool:
        with self._lock:
            entry = self._live_entry_locked(key)
            self._store.pop(key, None)
            return entry is not None

    async def increment(self, key: str, ttl_seconds: int) -> WindowCounter:
        with self._lock:
            now = self._clock()
            entry = self._live_entry_locked(key)
            if entry is None:
                entry = _Entry(payload="0", expires_at=now + ttl_seconds, counter=True)
                self._store[key] = entry
            elif entry.expires_at is None:
                entry.expires_at = now + ttl_seconds

            count = int(entry.payload) + 1
            entry.payload = str(count)
            self._store.move_to_end(key)
            self._evict_if_over_capacity_locked()

            ttl_remaining = max(0, int(math.ceil(entry.expires_at - now)))
            return WindowCounter(count=count, ttl_seconds=ttl_remaining)

    async def ping(self) -> bool:
        return True

    def clear(self) -> None:
        """Remove all entries and reset counters."""

        with self._lock:
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> dict[str, int | None]:
        """Return lightweight store metrics without exposing values."""

        with self._lock:
            return {
                "max_entries": self._max_entries,
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def _live_entry_locked(self, key: str) -> _Entry | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            self._evict_single(key)
            return None
        return entry

    def _evict_single(self, key: str) -> None:
        if key in self._store:
            self._store.pop(key, None)
            self._evictions += 1

    def _evict_expired_locked(self) -> None:
        now = self._clock()
        expired_keys = [
            k for k, entry in self._store.items()
            if entry.expires_at is not None and entry.expires_at <= now
        ]
        for key in expired_keys:
            self._evict_single(key)

    def _evict_if_over_capacity_locked(self) -> None:
        if self._max_entries is None:
            return

        cached = [k for k, entry in self._store.items() if not entry.counter]
        # Oldest first: OrderedDict keeps least recently used entries at the front
        for key in cached[: max(0, len(cached) - self._max_entries)]:
            self._store.pop(key)
            self._evictions += 1
