from fastapi import APIRouter, Depends, Query

from app.core.dependencies import get_weather_service
from app.core.rate_limit import get_client_identity
from app.schemas.weather import ClearCacheResponse, CurrentWeatherResponse, LocationRequest
from app.services.weather_service import WeatherService

router = APIRouter(tags=["Weather"])


@router.get(
    "/weather/current",
    response_model=CurrentWeatherResponse,
)
async def get_current_weather(
    location: str = Query(
        ...,
        min_length=1,
        description="Location name, address or 'lat,lon' pair. Case and surrounding whitespace are ignored for caching.",
    ),
    identity: str = Depends(get_client_identity),
    service: WeatherService = Depends(get_weather_service),
) -> CurrentWeatherResponse:
    """Current weather endpoint.

    Serves from cache when the normalized location was fetched within the
    cache TTL; otherwise calls the provider once and caches the result in the
    background.

    Returns:
        CurrentWeatherResponse: Weather fields plus ``fromCache``.

    Raises:
        ValidationAppError / InvalidLocationAppError: 400.
        RateLimitAppError: 429.
        UpstreamAuthAppError: 500. UpstreamUnavailableAppError: 503.
    """
    return await service.get_current(location, identity)


@router.post(
    "/weather/cache/clear",
    response_model=ClearCacheResponse,
)
async def clear_weather_cache(
    payload: LocationRequest,
    service: WeatherService = Depends(get_weather_service),
) -> ClearCacheResponse:
    """Invalidate the cached entry for a location.

    The next lookup for the location calls the provider again. Unlike cache
    reads, a backend failure here is reported (500 ``cache_invalidation_failed``).
    """
    return await service.clear_cache(payload.location)
