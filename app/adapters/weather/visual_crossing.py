"""Visual Crossing timeline API client adapter."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from app.adapters.weather.base import AbstractWeatherClient
from app.core.errors import (
    InvalidLocationAppError,
    UpstreamAuthAppError,
    UpstreamUnavailableAppError,
)
from app.core.logging import redact_text
from app.schemas.weather import WeatherData

logger = logging.getLogger(__name__)


def map_visual_crossing_payload(payload: dict[str, Any]) -> WeatherData:
    """Map a timeline API response onto WeatherData, field by field.

    Args:
        payload: Decoded JSON body of ``/timeline/{location}?include=current``.

    Returns:
        WeatherData built from the top-level location fields and
        ``currentConditions``.

    Raises:
        ValueError: If the payload has no usable location name.
    """
    if not isinstance(payload, dict):
        raise ValueError("payload is not a JSON object")

    current = payload.get("currentConditions") or {}
    if not isinstance(current, dict):
        raise ValueError("currentConditions is not a JSON object")

    location = payload.get("resolvedAddress") or payload.get("address")
    if not location:
        raise ValueError("payload has no resolvedAddress or address")

    return WeatherData(
        location=location,
        address=payload.get("address"),
        temperature=current.get("temp"),
        feels_like=current.get("feelslike"),
        conditions=current.get("conditions"),
        humidity=current.get("humidity"),
        wind_speed=current.get("windspeed"),
        description=payload.get("description"),
        icon=current.get("icon"),
        latitude=payload.get("latitude"),
        longitude=payload.get("longitude"),
        timezone=payload.get("timezone"),
        observed_at=current.get("datetime"),
        query_cost=payload.get("queryCost"),
    )


class VisualCrossingClient(AbstractWeatherClient):
    """Client for the Visual Crossing timeline endpoint.

    Makes exactly one attempt per call; retry policy is left to callers.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 10.0,
        unit_group: str = "metric",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Timeline endpoint base URL (location is appended as a path segment).
            api_key: Provider API key.
            timeout_seconds: Hard ceiling for one request, connection included.
            unit_group: Provider unit system.
            http_client: Optional preconfigured httpx client (tests inject a mock transport).
        """
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._unit_group = unit_group
        self.client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    def _build_url(self, location: str) -> str:
        return f"{self._base_url}/{quote(location.strip(), safe='')}"

    async def fetch_current(self, location: str) -> WeatherData:
        params = {
            "key": self._api_key,
            "unitGroup": self._unit_group,
            "include": "current",
        }

        try:
            response = await asyncio.wait_for(
                self.client.get(self._build_url(location), params=params),
                timeout=self._timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning(
                "weather.fetch_failed",
                extra={"reason": "timeout", "timeout_s": self._timeout_seconds},
            )
            raise UpstreamUnavailableAppError(
                code="upstream_timeout",
                message="Weather API request timed out",
                details={"hint": "Try again later"},
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "weather.fetch_failed",
                extra={"reason": "transport_error", "error": redact_text(str(exc))},
            )
            raise UpstreamUnavailableAppError(
                code="upstream_unavailable",
                message="Weather API request failed",
                details={"hint": "Try again later"},
            ) from exc

        status = response.status_code
        if status == 400:
            raise InvalidLocationAppError(
                code="invalid_location",
                message="Invalid location provided",
                details={"location": location, "upstream_status": status},
            )
        if status == 401:
            logger.error("weather.fetch_failed", extra={"reason": "auth_rejected", "upstream_status": status})
            raise UpstreamAuthAppError(
                code="upstream_auth_failed",
                message="Weather API authentication failed",
                details={"upstream_status": status},
            )
        if not response.is_success:
            logger.warning(
                "weather.fetch_failed",
                extra={"reason": "bad_status", "upstream_status": status},
            )
            raise UpstreamUnavailableAppError(
                code="upstream_unavailable",
                message="Weather API request failed",
                details={"upstream_status": status},
            )

        try:
            return map_visual_crossing_payload(response.json())
        except (ValueError, ValidationError) as exc:
            logger.warning(
                "weather.fetch_failed",
                extra={"reason": "unexpected_payload", "error": str(exc)},
            )
            raise UpstreamUnavailableAppError(
                code="upstream_bad_payload",
                message="Weather API returned an unexpected response",
                details={"upstream_status": status},
            ) from exc

    async def close(self) -> None:
        await self.client.aclose()
