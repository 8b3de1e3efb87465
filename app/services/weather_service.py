"""Weather service orchestrating rate limiting, caching, and upstream calls.

This service is the core request flow behind the weather endpoints:
- Admission control per caller identity (fixed window, fails open)
- Cache lookup by normalized location key
- Upstream fetch on miss
- Cache write detached from the response path
- Explicit cache invalidation
"""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.store.base import AbstractKeyValueStore, StoreError
from app.adapters.weather.base import AbstractWeatherClient
from app.core.errors import CacheAppError, RateLimitAppError, ValidationAppError
from app.core.logging import hash_identifier
from app.schemas.weather import ClearCacheResponse, CurrentWeatherResponse, WeatherData

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "weather:"

DEFAULT_CACHE_TTL_SECONDS = 12 * 60 * 60


def build_cache_key(location: str) -> str:
    """Normalize a location into its cache key.

    Locations differing only in case or surrounding whitespace share a key.

    Examples:
        >>> build_cache_key("  London  ")
        'weather:london'
        >>> build_cache_key("LONDON") == build_cache_key("london")
        True
    """
    return f"{CACHE_KEY_PREFIX}{location.strip().lower()}"


class WeatherService:
    """Service answering current-weather queries through a best-effort cache.

    Attributes:
        store: Key/value store holding cached weather entries.
        limiter: Admission control per caller identity (None disables it).
        client: Upstream weather provider adapter.
        cache_ttl_seconds: Lifetime of cached entries.
    """

    def __init__(
        self,
        *,
        store: AbstractKeyValueStore,
        client: AbstractWeatherClient,
        limiter: AbstractRateLimiter | None = None,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ) -> None:
        self.store = store
        self.client = client
        self.limiter = limiter
        self.cache_ttl_seconds = cache_ttl_seconds
        # Strong references keep detached writes alive until they finish
        self._pending_writes: set[asyncio.Task[None]] = set()

    def _validate_location(self, location: str) -> str:
        if not location or not location.strip():
            raise ValidationAppError(
                code="empty_location",
                message="Location must be a non-empty string.",
            )
        return location.strip()

    async def _admit(self, identity: str) -> None:
        """Consume one unit of the caller's budget.

        Raises:
            RateLimitAppError: If the caller exhausted its window.
        """
        if self.limiter is None:
            return

        result = await self.limiter.consume(identity)
        if result.allowed:
            return

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "identity_hash": hash_identifier(identity or ""),
                "limit": result.limit,
                "retry_after_s": result.retry_after_seconds,
            },
        )
        raise RateLimitAppError(
            code="rate_limit_exceeded",
            message="Rate limit exceeded. Try again later.",
            details={
                "limit": result.limit,
                "remaining": result.remaining,
                "reset_at": result.reset_at,
                "retry_after": result.retry_after_seconds or 0,
            },
        )

    async def _get_from_cache(self, cache_key: str) -> CurrentWeatherResponse | None:
        """Retrieve weather data from cache if available.

        Args:
            cache_key: Normalized location key.

        Returns:
            Cached response with from_cache=True, or None on a miss.
        """
        lookup = await self.store.get(cache_key)
        if not lookup.found:
            return None

        try:
            data = WeatherData.model_validate(lookup.value)
        except ValidationError:
            # Written by an incompatible version; refetch and overwrite
            logger.warning("cache.stale_shape", extra={"cache_key": cache_key})
            return None

        return CurrentWeatherResponse(**data.model_dump(), from_cache=True)

    async def _write_cache(self, cache_key: str, data: WeatherData) -> None:
        try:
            await self.store.set(cache_key, data.model_dump(), self.cache_ttl_seconds)
        except Exception:
            logger.exception("cache.write_failed", extra={"cache_key": cache_key})

    def _schedule_cache_write(self, cache_key: str, data: WeatherData) -> None:
        """Write to cache in the background; the response never waits on it."""
        task = asyncio.create_task(self._write_cache(cache_key, data))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def drain_pending_writes(self) -> None:
        """Wait for in-flight background cache writes (used on shutdown and in tests)."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    async def get_current(self, location: str, identity: str = "") -> CurrentWeatherResponse:
        """Return current weather for a location, served from cache when possible.

        Args:
            location: Location requested by the caller.
            identity: Caller identity for rate limiting; empty shares the default bucket.

        Returns:
            CurrentWeatherResponse tagged with from_cache.

        Raises:
            ValidationAppError: If location is empty (checked before any I/O).
            RateLimitAppError: If the caller exceeded its budget.
            InvalidLocationAppError: If the provider does not recognize the location.
            UpstreamAuthAppError: If the provider rejects our credentials.
            UpstreamUnavailableAppError: If the provider cannot be reached.
        """
        location = self._validate_location(location)

        await self._admit(identity)

        cache_key = build_cache_key(location)
        cached = await self._get_from_cache(cache_key)
        if cached is not None:
            logger.info("weather.served", extra={"cache_key": cache_key, "from_cache": True})
            return cached

        data = await self.client.fetch_current(location)

        self._schedule_cache_write(cache_key, data)

        logger.info("weather.served", extra={"cache_key": cache_key, "from_cache": False})
        return CurrentWeatherResponse(**data.model_dump(), from_cache=False)

    async def clear_cache(self, location: str) -> ClearCacheResponse:
        """Invalidate the cached entry for a location.

        Raises:
            ValidationAppError: If location is empty.
            CacheAppError: If the store could not delete the entry.
        """
        location = self._validate_location(location)
        cache_key = build_cache_key(location)

        try:
            removed = await self.store.delete(cache_key)
        except StoreError as exc:
            logger.error("cache.invalidation_failed", extra={"cache_key": cache_key, "error": str(exc)})
            raise CacheAppError(
                code="cache_invalidation_failed",
                message="Failed to clear cache",
                details={"location": location, "backend": self.store.backend_name},
            ) from exc

        logger.info("cache.invalidated", extra={"cache_key": cache_key, "removed": removed})
        return ClearCacheResponse(success=True)
