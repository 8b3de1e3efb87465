"""Key/value store interfaces.

Failure contract shared by every backend:

- ``get`` and ``set`` are best-effort. A backend failure is logged and turned
  into a miss (``get``) or a dropped write (``set``); it never raises.
- ``delete`` and ``increment`` raise ``StoreError`` so the caller decides:
  explicit invalidation reports it, the rate limiter fails open.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


class StoreError(RuntimeError):
    """Raised when the backend cannot complete a delete or increment."""


@dataclass(frozen=True)
class CacheLookup:
    """Result of a cache read.

    Attributes:
        value: Deserialized value (None when not found).
        found: Whether a live entry existed for the key.
    """

    value: Any
    found: bool


MISS = CacheLookup(value=None, found=False)


@dataclass(frozen=True)
class WindowCounter:
    """State of a counter after an increment.

    Attributes:
        count: Counter value after the increment.
        ttl_seconds: Seconds until the counter expires (-1 if it has no expiry).
    """

    count: int
    ttl_seconds: int


class AbstractKeyValueStore(ABC):
    """Interface for stores with per-key expiration."""

    backend_name: str = "abstract"

    @abstractmethod
    async def get(self, key: str) -> CacheLookup:
        """Read and deserialize the value stored at key.

        Returns:
            CacheLookup with found=False on a miss or on any backend failure.
        """
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Serialize value as JSON and store it with a relative expiration.

        Returns:
            True if the write was accepted, False if it was dropped.
        """
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove key if present.

        Returns:
            True if an entry was removed.

        Raises:
            StoreError: If the backend failed.
        """
        raise NotImplementedError

    @abstractmethod
    async def increment(self, key: str, ttl_seconds: int) -> WindowCounter:
        """Atomically increment a counter, applying ttl_seconds on creation only.

        Subsequent increments never refresh the expiration, which yields
        fixed (not sliding) windows.

        Raises:
            StoreError: If the backend failed.
        """
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Return True if the backend is reachable. Never raises."""
        raise NotImplementedError

    async def check_compatibility(self) -> bool:
        """Return False (after logging a warning) if the backend lacks features this store needs."""
        return True

    async def close(self) -> None:
        """Release backend resources."""
        return None
