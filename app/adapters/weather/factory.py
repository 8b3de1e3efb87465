"""Factory pattern for creating weather client instances."""

from app.adapters.weather.base import AbstractWeatherClient
from app.adapters.weather.visual_crossing import VisualCrossingClient
from app.core.config import WeatherSettings
from app.core.errors import ValidationAppError


def create_weather_client(weather_settings: WeatherSettings) -> AbstractWeatherClient:
    """Instantiate the configured upstream weather client.

    Validates provider-specific requirements and routes to the matching client.

    Args:
        weather_settings: Resolved ``WEATHER_*`` settings.

    Returns:
        AbstractWeatherClient: Configured client instance.

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    provider = weather_settings.provider.lower()

    if provider == "visualcrossing":
        if not weather_settings.api_key:
            raise ValidationAppError(
                code="weather_missing_api_key",
                message="Visual Crossing provider requires WEATHER_API_KEY environment variable",
            )
        return VisualCrossingClient(
            base_url=weather_settings.api_base_url,
            api_key=weather_settings.api_key,
            timeout_seconds=weather_settings.timeout_seconds,
            unit_group=weather_settings.unit_group,
        )

    raise ValidationAppError(
        code="weather_unknown_provider",
        message=(
            f"Unknown weather provider: '{provider}'. Supported providers: visualcrossing"
        ),
    )
