"""Open-Meteo weather client for Farm Irrigation."""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp
from async_timeout import timeout as async_timeout
from homeassistant.util import dt as dt_util

from ..const import OPEN_METEO_URL, WEATHER_TIMEOUT
from ..exceptions import ExternalUnavailableError
from ..models import ForecastDay
from .provider import WeatherProvider

_LOGGER = logging.getLogger(__name__)

FORECAST_DAYS = 7

# WMO weather interpretation codes
WEATHER_CODES: dict[int, str] = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}


def describe_weather_code(code: Any) -> str:
    """Return a readable condition for a WMO weather code."""
    try:
        return WEATHER_CODES.get(int(code), "Unknown weather")
    except (TypeError, ValueError):
        return "Unknown weather"


def parse_current(data: dict[str, Any]) -> dict[str, Any]:
    """Extract current conditions from an Open-Meteo response."""
    current = data.get("current")
    if not current:
        raise ExternalUnavailableError("Open-Meteo response has no current block")
    return {
        "temperature": current.get("temperature_2m"),
        "humidity": current.get("relative_humidity_2m"),
        "wind_speed": current.get("wind_speed_10m"),
        "condition": describe_weather_code(current.get("weather_code")),
    }


def parse_daily(data: dict[str, Any]) -> list[ForecastDay]:
    """Extract forecast days from an Open-Meteo response."""
    daily = data.get("daily")
    if not daily or not daily.get("time"):
        raise ExternalUnavailableError("Open-Meteo response has no daily block")

    maxima = daily.get("temperature_2m_max") or []
    minima = daily.get("temperature_2m_min") or []
    rain = daily.get("precipitation_probability_max") or []

    def _at(values: list[Any], index: int) -> Any:
        return values[index] if index < len(values) else None

    days: list[ForecastDay] = []
    for index, day in enumerate(daily["time"]):
        parsed = dt_util.parse_date(day)
        if parsed is None:
            continue
        days.append(
            ForecastDay(
                date=parsed,
                temp_min=_at(minima, index),
                temp_max=_at(maxima, index),
                precipitation=_at(rain, index) or 0.0,
            )
        )
    return days


class OpenMeteoProvider(WeatherProvider):
    """Query the Open-Meteo forecast API for a fixed location."""

    name = "Open-Meteo"

    def __init__(
        self,
        session: aiohttp.ClientSession,
        latitude: float,
        longitude: float,
    ) -> None:
        """Initialize the client."""
        self._session = session
        self._latitude = latitude
        self._longitude = longitude

    async def _async_request(self, params: dict[str, Any]) -> dict[str, Any]:
        """Make an API request."""
        query = {
            "latitude": self._latitude,
            "longitude": self._longitude,
            "wind_speed_unit": "kmh",
            "temperature_unit": "celsius",
            "timezone": "auto",
            **params,
        }

        try:
            async with async_timeout(WEATHER_TIMEOUT):
                response = await self._session.get(OPEN_METEO_URL, params=query)

                if response.status != 200:
                    error_text = await response.text()
                    raise ExternalUnavailableError(
                        f"Open-Meteo request failed: {response.status} - {error_text}"
                    )

                return await response.json()

        except asyncio.TimeoutError as err:
            raise ExternalUnavailableError("Open-Meteo request timed out") from err
        except aiohttp.ClientError as err:
            raise ExternalUnavailableError(f"Open-Meteo request failed: {err}") from err

    async def async_get_current(self) -> dict[str, Any]:
        """Return current conditions."""
        data = await self._async_request(
            {
                "current": "temperature_2m,relative_humidity_2m,"
                "wind_speed_10m,weather_code",
            }
        )
        return parse_current(data)

    async def async_get_forecast(self) -> list[ForecastDay]:
        """Return the daily forecast."""
        data = await self._async_request(
            {
                "daily": "temperature_2m_max,temperature_2m_min,"
                "precipitation_probability_max",
                "forecast_days": FORECAST_DAYS,
            }
        )
        return parse_daily(data)
