"""Construction and injection of the service's long-lived collaborators.

Everything that holds a connection (Redis client, httpx client) is built once
here when the app is created, stored on ``app.state`` and handed to routes
through FastAPI dependencies. Tests swap the service via
``app.dependency_overrides[get_weather_service]``.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from app.adapters.store.base import AbstractKeyValueStore
from app.adapters.store.in_memory import InMemoryKeyValueStore
from app.adapters.store.redis_store import RedisKeyValueStore, create_redis_client
from app.adapters.weather.base import AbstractWeatherClient
from app.adapters.weather.factory import create_weather_client
from app.core.config import Settings
from app.services.weather_service import WeatherService


@dataclass
class ServiceContainer:
    """Collaborators owned by one application instance."""

    store: AbstractKeyValueStore
    client: AbstractWeatherClient
    limiter: AbstractRateLimiter | None
    weather_service: WeatherService

    async def aclose(self) -> None:
        """Drain background cache writes, then close upstream and cache clients."""
        await self.weather_service.drain_pending_writes()
        await self.client.close()
        await self.store.close()


def build_store(cfg: Settings) -> AbstractKeyValueStore:
    if cfg.cache.backend == "memory":
        return InMemoryKeyValueStore(max_entries=cfg.cache.max_entries)
    client = create_redis_client(
        cfg.cache.redis_url,
        socket_timeout_seconds=cfg.cache.socket_timeout_seconds,
    )
    return RedisKeyValueStore(client)


def build_container(cfg: Settings) -> ServiceContainer:
    """Wire store, limiter, upstream client and service from settings.

    Args:
        cfg: Resolved application settings.

    Returns:
        ServiceContainer ready to be attached to ``app.state``.
    """
    store = build_store(cfg)
    client = create_weather_client(cfg.weather)

    limiter: AbstractRateLimiter | None = None
    if cfg.app.rate_limit_enabled:
        limiter = FixedWindowRateLimiter(
            store,
            limit=cfg.app.rate_limit_requests,
            window_seconds=cfg.app.rate_limit_window_seconds,
            namespace=cfg.app.rate_limit_namespace,
        )

    service = WeatherService(
        store=store,
        client=client,
        limiter=limiter,
        cache_ttl_seconds=cfg.cache.ttl_seconds,
    )
    return ServiceContainer(store=store, client=client, limiter=limiter, weather_service=service)


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_weather_service(request: Request) -> WeatherService:
    return get_container(request).weather_service


def get_store(request: Request) -> AbstractKeyValueStore:
    return get_container(request).store
