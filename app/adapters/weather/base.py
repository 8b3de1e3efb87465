from abc import ABC, abstractmethod

from app.schemas.weather import WeatherData


class AbstractWeatherClient(ABC):
    """Interface for upstream providers of current weather."""

    @abstractmethod
    async def fetch_current(self, location: str) -> WeatherData:
        """Fetch current conditions for a location with a single upstream call.

        Args:
            location: Location name, address or 'lat,lon' pair.

        Returns:
            WeatherData: Normalized current conditions.

        Raises:
            InvalidLocationAppError: If the provider does not recognize the location.
            UpstreamAuthAppError: If the provider rejects the configured credentials.
            UpstreamUnavailableAppError: On timeout, network failure or any other bad response.
        """
        ...

    async def close(self) -> None:
        """Release transport resources."""
        return None
