"""Weather data gathered from several providers at once and merged into one reading."""

from __future__ import annotations

import abc
import asyncio
from collections.abc import Iterable
from dataclasses import dataclass

import httpx

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"
OPEN_METEO_DEFAULT_HUMIDITY = 50.0
OPEN_METEO_DEFAULT_PRECIPITATION = 0.0


class WeatherError(Exception):
    """Base class for weather retrieval failures."""


class FetchError(WeatherError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Failed to fetch weather data from provider: {detail}")


class ParseError(WeatherError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Failed to parse weather data: {detail}")


class NoReliableData(WeatherError):
    def __init__(self) -> None:
        super().__init__("No reliable weather data could be obtained from any provider")


@dataclass(frozen=True)
class WeatherData:
    """Weather conditions in a provider-independent form."""

    temperature_celsius: float
    humidity_percent: float
    wind_speed_kmh: float
    precipitation_mm: float
    weather_code: int


class WeatherProvider(abc.ABC):
    """A source of current weather for a location."""

    name: str = "unnamed"

    @abc.abstractmethod
    async def get_weather(self, latitude: float, longitude: float) -> WeatherData:
        """Current weather at the given coordinates; raise WeatherError on failure."""


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


class WeatherEngine:
    """Queries every provider concurrently and merges the successful answers."""

    def __init__(self, providers: Iterable[WeatherProvider]) -> None:
        self.providers = list(providers)

    async def fetch_and_validate(self, latitude: float, longitude: float) -> WeatherData:
        """Average the readings of all providers that answered; raise NoReliableData if none did."""
        if not self.providers:
            raise NoReliableData()

        outcomes = await asyncio.gather(
            *(p.get_weather(latitude, longitude) for p in self.providers),
            return_exceptions=True,
        )
        readings: list[WeatherData] = []
        for outcome in outcomes:
            if isinstance(outcome, WeatherData):
                readings.append(outcome)
            elif not isinstance(outcome, WeatherError):
                raise outcome
        if not readings:
            raise NoReliableData()

        return WeatherData(
            temperature_celsius=_mean([r.temperature_celsius for r in readings]),
            humidity_percent=_mean([r.humidity_percent for r in readings]),
            wind_speed_kmh=_mean([r.wind_speed_kmh for r in readings]),
            precipitation_mm=_mean([r.precipitation_mm for r in readings]),
            weather_code=max(r.weather_code for r in readings),
        )


class OpenMeteoProvider(WeatherProvider):
    """Current weather from the Open-Meteo forecast API."""

    name = "Open-Meteo"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str = OPEN_METEO_URL,
    ) -> None:
        self._client = client
        self.base_url = base_url

    async def _request(self, client: httpx.AsyncClient, params: dict[str, str]) -> httpx.Response:
        try:
            return await client.get(self.base_url, params=params)
        except httpx.HTTPError as exc:
            raise FetchError(str(exc)) from exc

    async def get_weather(self, latitude: float, longitude: float) -> WeatherData:
        params = {
            "latitude": str(latitude),
            "longitude": str(longitude),
            "current_weather": "true",
        }
        if self._client is not None:
            response = await self._request(self._client, params)
        else:
            async with httpx.AsyncClient() as client:
                response = await self._request(client, params)

        if not response.is_success:
            raise FetchError(f"API returned status: {response.status_code}")

        try:
            current = response.json()["current_weather"]
            return WeatherData(
                temperature_celsius=float(current["temperature"]),
                humidity_percent=OPEN_METEO_DEFAULT_HUMIDITY,
                wind_speed_kmh=float(current["windspeed"]),
                precipitation_mm=OPEN_METEO_DEFAULT_PRECIPITATION,
                weather_code=int(current["weathercode"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise ParseError(str(exc)) from exc