"""Weather Client - Current conditions from OpenWeatherMap."""

import logging
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from ..core.models import WeatherReading, WeatherStatus
from ..core.weather import parse_weather


logger = logging.getLogger(__name__)


@dataclass
class WeatherConfig:
    """Configuration for the weather provider.

    Attributes:
        api_key: OpenWeatherMap API key
        latitude: Latitude of the location (Mölndal, SE by default)
        longitude: Longitude of the location
        place: Place name; used instead of coordinates when set
        base_url: Provider API root
        units: Unit system requested from the provider
    """

    api_key: str
    latitude: float = 57.65
    longitude: float = 12.03
    place: str | None = None
    base_url: str = "https://api.openweathermap.org/data/2.5"
    units: str = "metric"


@dataclass
class OpenWeatherClient:
    """HTTPX-backed current-conditions client."""

    config: WeatherConfig
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, config: WeatherConfig) -> "OpenWeatherClient":
        """Create a weather client with a managed httpx session."""
        return cls(config=config, http_client=httpx.AsyncClient())

    async def current(self) -> WeatherReading:
        """Fetch current conditions for the configured location."""
        params: dict[str, str | float] = {"appid": self.config.api_key, "units": self.config.units}
        if self.config.place:
            params["q"] = self.config.place
        else:
            params["lat"] = self.config.latitude
            params["lon"] = self.config.longitude

        response = await self.http_client.get(f"{self.config.base_url}/weather", params=params, timeout=15)
        response.raise_for_status()
        return parse_weather(response.json())

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


class WeatherFeed:
    """Last known weather, refreshed on demand.

    A failed fetch keeps the previous reading; ``error`` is only set while no
    reading has ever been obtained.
    """

    def __init__(self, client: OpenWeatherClient) -> None:
        self._client = client
        self.status = WeatherStatus()
        self._generation = 0

    async def refresh(self) -> WeatherStatus:
        self._generation += 1
        generation = self._generation
        try:
            reading = await self._client.current()
        except (httpx.HTTPError, ValidationError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.error("Error fetching weather data: %s", str(e))
            if generation == self._generation and self.status.reading is None:
                self.status = WeatherStatus(error=True)
            return self.status

        if generation != self._generation:
            logger.debug("Discarding superseded weather response")
            return self.status
        self.status = WeatherStatus(reading=reading)
        return self.status

    async def close(self) -> None:
        await self._client.close()
