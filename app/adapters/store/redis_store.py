"""Redis-backed key/value store.

The Redis client is created once by the application factory and injected
here. ``redis.asyncio`` connects lazily and reconnects through its pool, so an
unreachable server at startup only degrades requests (cache misses, dropped
writes, fail-open rate limiting) until it comes back.

Requires Redis 7.0 or later: rate limit counters rely on ``EXPIRE ... NX``.
On older servers every increment fails and the limiter stays open;
``check_compatibility`` reports this once at startup.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import RedisError

from app.adapters.store.base import MISS, AbstractKeyValueStore, CacheLookup, StoreError, WindowCounter

logger = logging.getLogger(__name__)

_BACKEND_ERRORS = (RedisError, OSError)

# EXPIRE ... NX (used by increment) first shipped in Redis 7.0
MIN_SERVER_MAJOR_VERSION = 7


def create_redis_client(url: str, *, socket_timeout_seconds: float = 0.25) -> redis.Redis:
    """Build the process-wide Redis client.

    Timeouts are kept short so a slow or dead cache never becomes the
    latency bottleneck of a request.

    Args:
        url: Redis connection URL.
        socket_timeout_seconds: Socket and connect timeout.

    Returns:
        Configured (not yet connected) asyncio Redis client.
    """

    return redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=socket_timeout_seconds,
        socket_connect_timeout=socket_timeout_seconds,
        health_check_interval=30,
        retry=Retry(NoBackoff(), retries=0),
    )


class RedisKeyValueStore(AbstractKeyValueStore):
    """Best-effort JSON store on top of an asyncio Redis client."""

    backend_name = "redis"

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    async def get(self, key: str) -> CacheLookup:
        try:
            raw = await self._client.get(key)
        except (UnicodeDecodeError, *_BACKEND_ERRORS) as exc:
            # decode_responses=True decodes inside the client call
            logger.warning(
                "cache.degraded",
                extra={"operation": "get", "cache_key": key, "error": str(exc)},
            )
            return MISS

        if raw is None:
            logger.debug("cache.miss", extra={"cache_key": key, "backend": self.backend_name})
            return MISS

        try:
            value = json.loads(raw)
        except ValueError as exc:
            logger.warning(
                "cache.degraded",
                extra={"operation": "get", "cache_key": key, "error": str(exc)},
            )
            return MISS

        logger.debug("cache.hit", extra={"cache_key": key, "backend": self.backend_name})
        return CacheLookup(value=value, found=True)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            payload = json.dumps(value)
            await self._client.set(key, payload, ex=ttl_seconds)
        except (TypeError, ValueError, *_BACKEND_ERRORS) as exc:
            logger.warning(
                "cache.degraded",
                extra={"operation": "set", "cache_key": key, "error": str(exc)},
            )
            return False

        logger.debug("cache.set", extra={"cache_key": key, "ttl_s": ttl_seconds})
        return True

    async def delete(self, key: str) -> bool:
        try:
            removed = await self._client.delete(key)
        except _BACKEND_ERRORS as exc:
            raise StoreError(f"Redis DEL failed: {exc}") from exc
        return bool(removed)

    async def increment(self, key: str, ttl_seconds: int) -> WindowCounter:
        # EXPIRE NX only applies when the key has no TTL yet, so the window is
        # fixed at creation; MULTI/EXEC makes INCR+EXPIRE one atomic step.
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, ttl_seconds, nx=True)
                pipe.ttl(key)
                count, _, ttl = await pipe.execute()
        except _BACKEND_ERRORS as exc:
            # Keys embed caller identities; keep them out of the message
            raise StoreError(f"Redis INCR failed: {exc}") from exc
        return WindowCounter(count=int(count), ttl_seconds=int(ttl))

    async def check_compatibility(self) -> bool:
        try:
            info = await self._client.info("server")
        except _BACKEND_ERRORS as exc:
            logger.warning("cache.version_check_skipped", extra={"error": str(exc)})
            return True

        version = str(info.get("redis_version", ""))
        try:
            major = int(version.split(".", 1)[0])
        except ValueError:
            return True

        if major < MIN_SERVER_MAJOR_VERSION:
            logger.warning(
                "cache.unsupported_server",
                extra={
                    "redis_version": version,
                    "required": f">={MIN_SERVER_MAJOR_VERSION}.0",
                    "impact": "rate limiting fails open",
                },
            )
            return False
        return True

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except _BACKEND_ERRORS as exc:
            logger.warning("cache.ping_failed", extra={"error": str(exc)})
            return False

    async def close(self) -> None:
        await self._client.aclose()
