"""Store-backed fixed-window rate limiter.

Each identity gets a counter at ``ratelimit:<namespace>:<identity>`` whose
expiration is set once, when the counter is created. The window therefore
starts with the identity's first request and is never extended by later
ones.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.store.base import AbstractKeyValueStore, StoreError
from app.core.logging import hash_identifier

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY = "default"


def build_rate_limit_key(namespace: str, identity: str | None) -> str:
    """Build the counter key for an identity.

    Anonymous callers (no identity) deliberately share one budget.

    Examples:
        >>> build_rate_limit_key("weather", "203.0.113.7")
        'ratelimit:weather:203.0.113.7'
        >>> build_rate_limit_key("weather", "")
        'ratelimit:weather:default'
    """

    identity = (identity or "").strip() or DEFAULT_IDENTITY
    return f"ratelimit:{namespace}:{identity}"


class FixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests per identity in fixed windows.

    If the store is unavailable the limiter fails open and flags the result
    as degraded.
    """

    def __init__(
        self,
        store: AbstractKeyValueStore,
        *,
        limit: int,
        window_seconds: int,
        namespace: str = "weather",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Store holding the window counters.
            limit: Maximum number of allowed requests per window.
            window_seconds: Size of the fixed window in seconds.
            namespace: Key namespace separating limiters sharing a store.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._store = store
        self._limit = limit
        self._window_seconds = window_seconds
        self._namespace = namespace
        self._clock = clock

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    async def consume(self, identity: str) -> RateLimitResult:
        key = build_rate_limit_key(self._namespace, identity)
        now = self._clock()

        try:
            counter = await self._store.increment(key, self._window_seconds)
        except StoreError as exc:
            logger.warning(
                "rate_limit.degraded",
                extra={"key_hash": hash_identifier(key), "error": str(exc)},
            )
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=self._limit,
                reset_at=int(now + self._window_seconds),
                retry_after_seconds=None,
                degraded=True,
            )

        # A counter without expiry can only come from outside this limiter;
        # report a full window rather than a negative wait.
        ttl = counter.ttl_seconds if counter.ttl_seconds >= 0 else self._window_seconds
        reset_at = int(now + ttl)
        remaining = max(0, self._limit - counter.count)

        if counter.count <= self._limit:
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=remaining,
                reset_at=reset_at,
                retry_after_seconds=None,
            )

        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=0,
            reset_at=reset_at,
            retry_after_seconds=max(1, ttl),
        )
