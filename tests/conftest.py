"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the environment before any app module builds its settings, so tests
never need a real provider key or a running Redis.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("WEATHER_API_KEY", "test-weather-key")
os.environ.setdefault("WEATHER_API_BASE_URL", "https://weather.test/timeline")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Any

import pytest

from app.adapters.weather.base import AbstractWeatherClient
from app.schemas.weather import WeatherData


class FakeTime:
    """Deterministic clock used to test expiration logic."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def time(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FakeWeatherClient(AbstractWeatherClient):
    """Upstream stand-in that records every fetch."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[str] = []
        self.error = error
        self.closed = False

    async def fetch_current(self, location: str) -> WeatherData:
        self.calls.append(location)
        if self.error is not None:
            raise self.error
        return WeatherData(
            location=f"{location.title()}, Resolved",
            address=location,
            temperature=18.5,
            feels_like=17.9,
            conditions="Partially cloudy",
            humidity=62.0,
            wind_speed=14.4,
            description="Partly cloudy throughout the day.",
            icon="partly-cloudy-day",
            latitude=48.8566,
            longitude=2.3522,
            timezone="Europe/Paris",
            observed_at="14:00:00",
            query_cost=1,
        )

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def fake_client() -> FakeWeatherClient:
    return FakeWeatherClient()


@pytest.fixture
def visual_crossing_payload() -> dict[str, Any]:
    """Trimmed timeline API response for ``include=current``."""
    return {
        "queryCost": 1,
        "latitude": 51.5064,
        "longitude": -0.12721,
        "resolvedAddress": "London, England, United Kingdom",
        "address": "London",
        "timezone": "Europe/London",
        "tzoffset": 1.0,
        "description": "Similar temperatures continuing with a chance of rain.",
        "days": [],
        "currentConditions": {
            "datetime": "14:20:00",
            "datetimeEpoch": 1718889600,
            "temp": 19.2,
            "feelslike": 19.0,
            "humidity": 58.3,
            "windspeed": 16.6,
            "conditions": "Partially cloudy",
            "icon": "partly-cloudy-day",
        },
    }
