"""Pydantic schemas for weather requests and responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class WeatherData(BaseModel):
    """Current conditions for a location, normalized from the provider payload.

    This is the shape stored in the cache; the provider's own schema never
    leaves the weather client adapter.
    """

    location: str = Field(
        ...,
        description="Location name as resolved by the provider (e.g., 'London, England, United Kingdom').",
    )
    address: str | None = Field(
        default=None,
        description="Location query as echoed back by the provider.",
    )
    temperature: float | None = Field(
        default=None,
        description="Air temperature in the configured unit group (°C for metric).",
    )
    feels_like: float | None = Field(
        default=None,
        description="Apparent temperature.",
    )
    conditions: str | None = Field(
        default=None,
        description="Short conditions summary (e.g., 'Partially cloudy').",
    )
    humidity: float | None = Field(
        default=None,
        description="Relative humidity in percent.",
    )
    wind_speed: float | None = Field(
        default=None,
        description="Sustained wind speed (km/h for metric).",
    )
    description: str | None = Field(
        default=None,
        description="Longer human-readable description of the weather.",
    )
    icon: str | None = Field(
        default=None,
        description="Provider icon identifier.",
    )
    latitude: float | None = Field(default=None, description="Resolved latitude.")
    longitude: float | None = Field(default=None, description="Resolved longitude.")
    timezone: str | None = Field(default=None, description="IANA timezone of the location.")
    observed_at: str | None = Field(
        default=None,
        description="Local time of the observation as reported by the provider.",
    )
    query_cost: int | None = Field(
        default=None,
        description="Provider billing cost of the upstream query.",
    )


class CurrentWeatherResponse(WeatherData):
    """Weather data annotated with its cache provenance."""

    model_config = ConfigDict(populate_by_name=True)

    from_cache: bool = Field(
        default=False,
        alias="fromCache",
        description="True if the data was served from cache without calling the provider.",
    )


class LocationRequest(BaseModel):
    """Body of location-scoped mutations."""

    location: str = Field(
        ...,
        min_length=1,
        description="Location name, address or 'lat,lon' pair.",
        examples=["London"],
    )


class ClearCacheResponse(BaseModel):
    """Result of an explicit cache invalidation."""

    success: bool = Field(..., description="True once the cache entry is gone.")


class CacheHealthResponse(BaseModel):
    """Reachability of the cache backend."""

    status: str = Field(..., description="'ok' or 'degraded'.")
    backend: str = Field(..., description="Configured backend name.")
