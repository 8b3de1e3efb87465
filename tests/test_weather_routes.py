"""HTTP-level tests for the weather and health endpoints."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.adapters.rate_limit.fixed_window import FixedWindowRateLimiter
from app.adapters.store.base import StoreError
from app.adapters.store.in_memory import InMemoryKeyValueStore
from app.core.app_factory import create_app
from app.core.config import settings
from app.core.dependencies import get_store, get_weather_service
from app.core.errors import (
    InvalidLocationAppError,
    UpstreamAuthAppError,
    UpstreamUnavailableAppError,
)
from app.services.weather_service import WeatherService, build_cache_key


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def service(store, fake_client) -> WeatherService:
    limiter = FixedWindowRateLimiter(store, limit=2, window_seconds=3600)
    return WeatherService(store=store, client=fake_client, limiter=limiter, cache_ttl_seconds=60)


@pytest.fixture
def app(service, store) -> FastAPI:
    app = create_app()
    app.dependency_overrides[get_weather_service] = lambda: service
    app.dependency_overrides[get_store] = lambda: store
    return app


@pytest.fixture
def client(app: FastAPI):
    with TestClient(app) as test_client:
        yield test_client


class TestCurrentWeather:
    def test_miss_returns_provider_data(self, client: TestClient, fake_client) -> None:
        response = client.get("/v1/weather/current", params={"location": "Paris"})

        assert response.status_code == 200
        body = response.json()
        assert body["location"] == "Paris, Resolved"
        assert body["temperature"] == 18.5
        assert body["fromCache"] is False
        assert fake_client.calls == ["Paris"]

    def test_hit_is_flagged_from_cache(self, client: TestClient, store, fake_client) -> None:
        asyncio.run(
            store.set(
                build_cache_key("Paris"),
                {"location": "Paris, France", "temperature": 12.0},
                60,
            )
        )

        response = client.get("/v1/weather/current", params={"location": "  paris "})

        assert response.status_code == 200
        assert response.json()["fromCache"] is True
        assert response.json()["location"] == "Paris, France"
        assert fake_client.calls == []

    def test_missing_location_is_schema_error(self, client: TestClient) -> None:
        response = client.get("/v1/weather/current")

        assert response.status_code == 422

    def test_blank_location_is_rejected(self, client: TestClient, fake_client) -> None:
        response = client.get("/v1/weather/current", params={"location": "   "})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "empty_location"
        assert fake_client.calls == []

    @pytest.mark.parametrize(
        ("error", "status", "code"),
        [
            (InvalidLocationAppError(code="invalid_location", message="Invalid location provided"), 400, "invalid_location"),
            (UpstreamAuthAppError(code="upstream_auth_failed", message="Weather API authentication failed"), 500, "upstream_auth_failed"),
            (UpstreamUnavailableAppError(code="upstream_timeout", message="Weather API request timed out"), 503, "upstream_timeout"),
        ],
    )
    def test_upstream_errors_are_mapped(
        self, client: TestClient, fake_client, error, status: int, code: str
    ) -> None:
        fake_client.error = error

        response = client.get("/v1/weather/current", params={"location": "Paris"})

        assert response.status_code == status
        body = response.json()
        assert body["error"]["code"] == code
        assert "request_id" in body["error"]

    def test_rate_limit_returns_429_with_headers(self, client: TestClient) -> None:
        headers = {"X-Forwarded-For": "203.0.113.7"}
        assert client.get("/v1/weather/current", params={"location": "Paris"}, headers=headers).status_code == 200
        assert client.get("/v1/weather/current", params={"location": "Paris"}, headers=headers).status_code == 200

        response = client.get("/v1/weather/current", params={"location": "Paris"}, headers=headers)

        assert response.status_code == 429
        assert response.json()["error"]["code"] == "rate_limit_exceeded"
        assert int(response.headers["Retry-After"]) > 0
        assert response.headers["X-RateLimit-Limit"] == "2"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert "X-RateLimit-Reset" in response.headers

    def test_rate_limit_is_per_forwarded_client(self, client: TestClient) -> None:
        first = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
        for _ in range(2):
            client.get("/v1/weather/current", params={"location": "Paris"}, headers=first)
        assert client.get("/v1/weather/current", params={"location": "Paris"}, headers=first).status_code == 429

        other = {"X-Forwarded-For": "198.51.100.2"}
        assert client.get("/v1/weather/current", params={"location": "Paris"}, headers=other).status_code == 200

    def test_callers_without_forwarded_header_share_a_bucket(self, client: TestClient) -> None:
        for _ in range(2):
            assert client.get("/v1/weather/current", params={"location": "Paris"}).status_code == 200

        assert client.get("/v1/weather/current", params={"location": "Oslo"}).status_code == 429


class TestClearCache:
    def test_clear_removes_entry(self, client: TestClient, store) -> None:
        asyncio.run(store.set(build_cache_key("Paris"), {"location": "Paris, France"}, 60))

        response = client.post("/v1/weather/cache/clear", json={"location": "PARIS"})

        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert asyncio.run(store.get(build_cache_key("Paris"))).found is False

    def test_clear_is_not_rate_limited(self, client: TestClient) -> None:
        for _ in range(5):
            assert client.post("/v1/weather/cache/clear", json={"location": "Paris"}).status_code == 200

    def test_missing_body_is_schema_error(self, client: TestClient) -> None:
        assert client.post("/v1/weather/cache/clear", json={}).status_code == 422

    def test_store_failure_returns_500(self, client: TestClient, store) -> None:
        store.delete = AsyncMock(side_effect=StoreError("Connection refused"))

        response = client.post("/v1/weather/cache/clear", json={"location": "Paris"})

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "cache_invalidation_failed"


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_cache_health_ok(self, client: TestClient) -> None:
        response = client.get("/health/cache")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "backend": "memory"}

    def test_cache_health_degraded(self, client: TestClient, store) -> None:
        store.ping = AsyncMock(return_value=False)

        response = client.get("/health/cache")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"


def test_rate_limit_headers_can_be_disabled(service) -> None:
    cfg = settings.model_copy(
        update={"app": settings.app.model_copy(update={"rate_limit_include_headers": False})}
    )
    app = create_app(cfg)
    app.dependency_overrides[get_weather_service] = lambda: service

    with TestClient(app) as client:
        for _ in range(2):
            assert client.get("/v1/weather/current", params={"location": "Paris"}).status_code == 200
        response = client.get("/v1/weather/current", params={"location": "Paris"})

    assert response.status_code == 429
    assert response.json()["error"]["code"] == "rate_limit_exceeded"
    assert "Retry-After" not in response.headers
    assert "X-RateLimit-Limit" not in response.headers
