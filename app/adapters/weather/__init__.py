"""Weather provider adapter layer - abstracts over the upstream provider."""

from app.adapters.weather.base import AbstractWeatherClient
from app.adapters.weather.factory import create_weather_client
from app.adapters.weather.visual_crossing import VisualCrossingClient, map_visual_crossing_payload

__all__ = [
    "AbstractWeatherClient",
    "VisualCrossingClient",
    "create_weather_client",
    "map_visual_crossing_payload",
]
