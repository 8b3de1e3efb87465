"""Key/value store adapters backing the weather cache and the rate limiter.

The service depends on ``AbstractKeyValueStore`` only, so Redis (production)
and the in-process store (development/tests) are interchangeable.
"""

from app.adapters.store.base import AbstractKeyValueStore, CacheLookup, StoreError, WindowCounter
from app.adapters.store.in_memory import InMemoryKeyValueStore
from app.adapters.store.redis_store import RedisKeyValueStore

__all__ = [
    "AbstractKeyValueStore",
    "CacheLookup",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "StoreError",
    "WindowCounter",
]
